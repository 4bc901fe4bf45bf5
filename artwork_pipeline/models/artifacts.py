"""Artifact and storage models.

Typed boundaries for objects the pipeline publishes to storage.
"""

from __future__ import annotations

from artwork_pipeline.models.base import JsonModel


class S3Location(JsonModel):
    bucket: str
    key: str


class RibbonResult(JsonModel):
    """A published ribbon preview."""

    location: S3Location
    tile_count: int
    width: int
    height: int
