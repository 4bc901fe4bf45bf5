"""Ribbon builder: tiles an exhibition's thumbnails into one preview image.

Given a prefix such as ``exhibitions/abc``, every object under
``exhibitions/abc/thumbs/`` becomes one square tile. Tiles run left to right
and wrap after ``tiles_per_row``; a ribbon of 21 tiles at 9 per row has three
rows with three tiles in the last one. The result is stored as
``exhibitions/abc/ribbon.jpg``.

Tiles are fetched concurrently but overlaid strictly in list order: the
composite is a left fold where each step takes the previous canvas and
returns the next one.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Sequence

from PIL import Image

from artwork_pipeline.errors import DecodeError, InvalidEvent
from artwork_pipeline.models.artifacts import RibbonResult, S3Location
from artwork_pipeline.observability.trace_logging import trace_event
from artwork_pipeline.services.derivative_generator import decode_image, encode_jpeg
from artwork_pipeline.stores.storage import StorageGateway

logger = logging.getLogger(__name__)

RIBBON_BACKGROUND = (255, 255, 255, 128)
RIBBON_JPEG_QUALITY = 80
RIBBON_ACL = "public-read"

# Upper bound on candidate crop windows examined along the overflowing axis.
_MAX_CROP_CANDIDATES = 16


def ribbon_canvas_size(tile_count: int, tile_size: int, tiles_per_row: int) -> tuple[int, int]:
    """Canvas ``(width, height)`` for ``tile_count`` tiles."""
    if tile_count <= 0:
        return 0, 0
    rows = -(-tile_count // tiles_per_row)
    return tile_size * min(tile_count, tiles_per_row), tile_size * rows


def ribbon_tile_position(index: int, tile_size: int, tiles_per_row: int) -> tuple[int, int]:
    """Top-left ``(left, top)`` of tile ``index`` (0-based)."""
    return tile_size * (index % tiles_per_row), tile_size * (index // tiles_per_row)


def _offsets(excess: int) -> list[int]:
    if excess <= 0:
        return [0]
    step = max(1, excess // _MAX_CROP_CANDIDATES)
    offsets = list(range(0, excess + 1, step))
    if offsets[-1] != excess:
        offsets.append(excess)
    return offsets


def entropy_crop(image: Image.Image, size: int) -> Image.Image:
    """Scale ``image`` to cover a ``size`` square and keep its busiest window.

    Among the candidate windows along the overflowing axis, the one with the
    highest entropy wins; ties go to the earliest window.
    """
    image = image.convert("RGB")
    scale = max(size / image.width, size / image.height)
    covered = image.resize(
        (max(size, round(image.width * scale)), max(size, round(image.height * scale))),
        Image.Resampling.LANCZOS,
    )

    best_box = (0, 0, size, size)
    best_entropy = -1.0
    for left in _offsets(covered.width - size):
        for top in _offsets(covered.height - size):
            box = (left, top, left + size, top + size)
            entropy = covered.crop(box).entropy()
            if entropy > best_entropy:
                best_box, best_entropy = box, entropy
    return covered.crop(best_box)


def new_ribbon_canvas(tile_count: int, tile_size: int, tiles_per_row: int) -> Image.Image:
    width, height = ribbon_canvas_size(tile_count, tile_size, tiles_per_row)
    return Image.new("RGBA", (width, height), RIBBON_BACKGROUND)


def overlay_tile(
    canvas: Image.Image,
    tile: tuple[int, bytes],
    *,
    tile_size: int,
    tiles_per_row: int,
) -> Image.Image:
    """One fold step: return a new canvas with ``tile`` placed on ``canvas``."""
    index, data = tile
    try:
        cropped = entropy_crop(decode_image(data), tile_size)
    except DecodeError as e:
        raise DecodeError(f"Error adding tile {index} to ribbon: {e.message}", tile_index=index) from e
    left, top = ribbon_tile_position(index, tile_size, tiles_per_row)
    next_canvas = canvas.copy()
    next_canvas.paste(cropped, (left, top))
    return next_canvas


def compose_ribbon(tiles: Sequence[bytes], tile_size: int, tiles_per_row: int) -> Image.Image:
    """Fold ``tiles`` in order onto a fresh canvas."""
    step = functools.partial(overlay_tile, tile_size=tile_size, tiles_per_row=tiles_per_row)
    return functools.reduce(
        step,
        enumerate(tiles),
        new_ribbon_canvas(len(tiles), tile_size, tiles_per_row),
    )


def normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip()
    if prefix and not prefix.endswith("/"):
        prefix = prefix + "/"
    return prefix


class RibbonCompositor:
    """Builds and publishes ribbon previews for storage prefixes."""

    def __init__(
        self,
        storage: StorageGateway,
        *,
        bucket: str,
        tile_size: int = 40,
        tiles_per_row: int = 9,
        thumbs_dir: str = "thumbs/",
        object_name: str = "ribbon.jpg",
        fetch_concurrency: int = 8,
    ) -> None:
        self._storage = storage
        self._bucket = bucket
        self._tile_size = tile_size
        self._tiles_per_row = tiles_per_row
        self._thumbs_dir = thumbs_dir
        self._object_name = object_name
        self._fetch_concurrency = max(1, fetch_concurrency)

    async def _fetch_tiles(self, keys: Sequence[str]) -> list[bytes]:
        semaphore = asyncio.Semaphore(self._fetch_concurrency)

        async def fetch(key: str) -> bytes:
            async with semaphore:
                return await self._storage.get(self._bucket, key)

        # gather keeps results in key order regardless of completion order.
        return list(await asyncio.gather(*(fetch(key) for key in keys)))

    async def build(self, prefix: str) -> RibbonResult | None:
        """Build the ribbon for ``prefix``.

        Returns:
            The published ribbon, or None when there are no thumbnails.

        Raises:
            InvalidEvent: If the prefix is empty.
            DecodeError: If any tile cannot be decoded; nothing is published.
            TransientInfraError: On storage failures.
        """
        prefix = normalize_prefix(prefix)
        if not prefix:
            raise InvalidEvent("Ribbon prefix must not be empty.")
        thumbs_prefix = f"{prefix}{self._thumbs_dir}"
        keys = [k for k in await self._storage.list(self._bucket, thumbs_prefix) if not k.endswith("/")]
        logger.info("Processing %d images for prefix %s", len(keys), prefix)
        if not keys:
            return None

        trace_event("ribbon.start", prefix=prefix, tiles=len(keys))
        tiles = await self._fetch_tiles(keys)
        canvas = await asyncio.to_thread(compose_ribbon, tiles, self._tile_size, self._tiles_per_row)
        data = await asyncio.to_thread(encode_jpeg, canvas.convert("RGB"), RIBBON_JPEG_QUALITY)

        ribbon_key = f"{prefix}{self._object_name}"
        await self._storage.put(self._bucket, ribbon_key, data, "image/jpeg", acl=RIBBON_ACL)
        logger.info("Created %s (%dx%d, %d tiles)", ribbon_key, canvas.width, canvas.height, len(keys))
        trace_event("ribbon.end", prefix=prefix, key=ribbon_key, tiles=len(keys))
        return RibbonResult(
            location=S3Location(bucket=self._bucket, key=ribbon_key),
            tile_count=len(keys),
            width=canvas.width,
            height=canvas.height,
        )
