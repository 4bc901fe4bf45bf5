"""Derivative generation (shrink-to-fit JPEG variants).

Every target is computed from the same decoded source image, never from a
previous derivative, so the order of targets does not change any output.
"""

import asyncio
import io
import logging
from collections.abc import Sequence

from PIL import Image, UnidentifiedImageError

from artwork_pipeline.errors import DecodeError
from artwork_pipeline.models.domain import Derivative, DerivativeSet, ImageMetadata, SizeTarget

logger = logging.getLogger(__name__)

DERIVATIVE_FORMAT = "JPEG"
DERIVATIVE_CONTENT_TYPE = "image/jpeg"

# Pillow mode -> colour space name recorded in image metadata.
_COLOR_SPACES = {
    "1": "b-w",
    "L": "b-w",
    "LA": "b-w",
    "I": "b-w",
    "I;16": "b-w",
    "F": "b-w",
    "P": "srgb",
    "PA": "srgb",
    "RGB": "srgb",
    "RGBA": "srgb",
    "RGBX": "srgb",
    "YCbCr": "srgb",
    "CMYK": "cmyk",
    "LAB": "lab",
    "HSV": "hsv",
}


def decode_image(data: bytes) -> Image.Image:
    """Decode a raster buffer fully.

    Raises:
        DecodeError: If the buffer is empty, corrupt, or not a supported format.
    """
    if not data:
        raise DecodeError("Empty image buffer")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Unsupported or corrupt image: {e}") from e
    return image


def capture_metadata(image: Image.Image, size_bytes: int | None = None) -> ImageMetadata:
    """Describe a decoded source image."""
    density = None
    dpi = image.info.get("dpi")
    if dpi:
        try:
            density = int(round(float(dpi[0])))
        except (TypeError, ValueError, IndexError):
            density = None
    return ImageMetadata(
        format=(image.format or "").lower() or None,
        width=image.width,
        height=image.height,
        color_space=_COLOR_SPACES.get(image.mode, image.mode.lower()),
        size_bytes=size_bytes,
        density=density,
    )


def _encodable(image: Image.Image) -> Image.Image:
    # JPEG has no alpha or palette; convert once before any resizing.
    if image.mode in ("RGB", "L"):
        return image
    return image.convert("RGB")


def fit_within(image: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """Return a copy scaled down to fit the box, aspect preserved, never enlarged."""
    resized = image.copy()
    resized.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)
    return resized


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    out = io.BytesIO()
    image.save(out, format=DERIVATIVE_FORMAT, quality=quality)
    return out.getvalue()


class DerivativeGenerator:
    """Produces one encoded derivative per size target."""

    def generate(
        self,
        data: bytes,
        targets: Sequence[SizeTarget],
        *,
        size_bytes: int | None = None,
    ) -> DerivativeSet:
        """Generate derivatives for ``targets`` in their declared order.

        Args:
            data: Source image bytes.
            targets: Size targets; processed in order.
            size_bytes: Original object size to record in the metadata
                (defaults to ``len(data)``).

        Returns:
            DerivativeSet with the source metadata and one derivative per target.

        Raises:
            DecodeError: If ``data`` is not a supported raster image.
        """
        source = decode_image(data)
        metadata = capture_metadata(source, size_bytes if size_bytes is not None else len(data))
        base = _encodable(source)

        derivatives: list[Derivative] = []
        for target in targets:
            resized = fit_within(base, target.max_width, target.max_height)
            encoded = encode_jpeg(resized, target.quality)
            logger.debug(
                "Generated %s derivative %dx%d (%d bytes) from %dx%d",
                target.name,
                resized.width,
                resized.height,
                len(encoded),
                source.width,
                source.height,
            )
            derivatives.append(
                Derivative(
                    target=target,
                    data=encoded,
                    width=resized.width,
                    height=resized.height,
                    content_type=DERIVATIVE_CONTENT_TYPE,
                )
            )
        return DerivativeSet(source_metadata=metadata, derivatives=derivatives)

    async def generate_async(
        self,
        data: bytes,
        targets: Sequence[SizeTarget],
        *,
        size_bytes: int | None = None,
    ) -> DerivativeSet:
        """Run ``generate`` in a worker thread."""
        return await asyncio.to_thread(self.generate, data, targets, size_bytes=size_bytes)
