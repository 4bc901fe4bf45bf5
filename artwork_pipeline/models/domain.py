"""Pydantic domain models.

Stored records keep the field names of the existing tables (``sub``,
``uref``, ``uuid``, ``raw-key`` ...) through explicit aliases, so
``to_item()`` output can be written as-is and table items parse directly.
"""

from dataclasses import dataclass, field

from pydantic import Field

from artwork_pipeline.enums import SizeTargetName
from artwork_pipeline.models.base import JsonModel


class IdentityRecord(JsonModel):
    """Identity store record mapping an external subject to a user ref."""

    external_id: str = Field(alias="sub")
    internal_ref: str = Field(alias="uref")


class ImageMetadata(JsonModel):
    """Metadata of the original upload (never of a derivative).

    Fields are optional so entries written by older releases still parse.
    """

    format: str | None = None
    width: int | None = None
    height: int | None = None
    color_space: str | None = Field(default=None, alias="space")
    size_bytes: int | None = Field(default=None, alias="size")
    density: int | None = None


class ImageEntry(JsonModel):
    """One image of an artwork, as stored in the artwork's ``images`` list."""

    derived_key: str = Field(alias="key")
    raw_key: str | None = Field(default=None, alias="raw-key")
    image_id: str | None = Field(default=None, alias="uuid")
    filename: str | None = None
    metadata: ImageMetadata | None = None


class ArtworkRecord(JsonModel):
    """Artwork record addressed by (internal ref, artwork id)."""

    internal_ref: str = Field(alias="uref")
    artwork_id: str = Field(alias="uuid")
    images: list[ImageEntry] = Field(default_factory=list)


class ObjectKey(JsonModel):
    """Parsed ``identityToken/artworkId/imageId/filename`` object key."""

    raw: str
    identity_token: str
    artwork_id: str
    image_id: str
    filename: str
    destination_key: str


class SizeTarget(JsonModel):
    """One derivative size: bounding box, encode quality and target bucket."""

    name: SizeTargetName
    bucket: str
    max_width: int = Field(gt=0)
    max_height: int = Field(gt=0)
    quality: int = Field(default=100, ge=1, le=100)


@dataclass
class Derivative:
    """An encoded derivative for one size target.

    Attributes:
        target: The size target it was produced for.
        data: Encoded image bytes.
        width: Pixel width of the derivative.
        height: Pixel height of the derivative.
        content_type: MIME type of ``data``.
    """

    target: SizeTarget
    data: bytes
    width: int
    height: int
    content_type: str = "image/jpeg"


@dataclass
class DerivativeSet:
    """All derivatives of one source plus the source's own metadata."""

    source_metadata: ImageMetadata
    derivatives: list[Derivative] = field(default_factory=list)

    def for_target(self, name: SizeTargetName) -> Derivative | None:
        for derivative in self.derivatives:
            if derivative.target.name == name:
                return derivative
        return None
