"""Unit tests for ribbon geometry, composition and publishing."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from PIL import Image

from artwork_pipeline.errors import DecodeError, InvalidEvent
from artwork_pipeline.services.ribbon_compositor import (
    RIBBON_ACL,
    RIBBON_BACKGROUND,
    RibbonCompositor,
    compose_ribbon,
    entropy_crop,
    new_ribbon_canvas,
    normalize_prefix,
    overlay_tile,
    ribbon_canvas_size,
    ribbon_tile_position,
)

BUCKET = "public-pages"
RED = (220, 20, 20)
GREEN = (20, 200, 20)
BLUE = (20, 20, 220)


def _close(pixel, color, tolerance=12):
    return all(abs(p - c) <= tolerance for p, c in zip(pixel, color))


class TestGeometry:
    @pytest.mark.parametrize(
        "count,expected",
        [
            (0, (0, 0)),
            (1, (40, 40)),
            (9, (360, 40)),
            (10, (360, 80)),
            (21, (360, 120)),
        ],
    )
    def test_canvas_size(self, count, expected):
        assert ribbon_canvas_size(count, 40, 9) == expected

    @pytest.mark.parametrize(
        "index,expected",
        [(0, (0, 0)), (8, (320, 0)), (9, (0, 40)), (20, (80, 80))],
    )
    def test_tile_position(self, index, expected):
        assert ribbon_tile_position(index, 40, 9) == expected

    @given(
        count=st.integers(min_value=1, max_value=200),
        tile=st.integers(min_value=1, max_value=64),
        per_row=st.integers(min_value=1, max_value=20),
    )
    @settings(max_examples=100)
    def test_every_tile_inside_canvas(self, count, tile, per_row):
        width, height = ribbon_canvas_size(count, tile, per_row)
        for index in range(count):
            left, top = ribbon_tile_position(index, tile, per_row)
            assert left + tile <= width
            assert top + tile <= height
        # The last tile sits on the last row.
        assert ribbon_tile_position(count - 1, tile, per_row)[1] == height - tile


class TestComposition:
    def test_tiles_placed_in_order(self, make_image):
        tiles = [make_image(40, 40, color=c) for c in (RED, GREEN, BLUE)]

        canvas = compose_ribbon(tiles, 40, 2)

        assert canvas.size == (80, 80)
        assert _close(canvas.getpixel((20, 20)), RED)
        assert _close(canvas.getpixel((60, 20)), GREEN)
        assert _close(canvas.getpixel((20, 60)), BLUE)
        # Unused slot keeps the translucent white background.
        assert canvas.getpixel((60, 60)) == RIBBON_BACKGROUND

    def test_non_square_tiles_cover_their_cell(self, make_image):
        canvas = compose_ribbon([make_image(120, 40, color=GREEN)], 40, 9)
        assert canvas.size == (40, 40)
        for xy in [(0, 0), (39, 0), (0, 39), (39, 39)]:
            assert canvas.getpixel(xy)[3] == 255

    def test_overlay_returns_new_canvas(self, make_image):
        canvas = new_ribbon_canvas(1, 40, 9)

        result = overlay_tile(canvas, (0, make_image(40, 40, color=RED)), tile_size=40, tiles_per_row=9)

        assert result is not canvas
        assert canvas.getpixel((20, 20)) == RIBBON_BACKGROUND
        assert _close(result.getpixel((20, 20)), RED)

    def test_bad_tile_reports_index(self, make_image):
        tiles = [make_image(40, 40), b"junk"]
        with pytest.raises(DecodeError) as exc_info:
            compose_ribbon(tiles, 40, 9)
        assert exc_info.value.context["tile_index"] == 1


class TestEntropyCrop:
    def test_square_output(self):
        assert entropy_crop(Image.new("RGB", (90, 30), RED), 40).size == (40, 40)

    def test_prefers_busy_window(self):
        """Flat left half, patterned right half: the crop lands on the pattern."""
        image = Image.new("RGB", (80, 40), (128, 128, 128))
        for x in range(40, 80):
            for y in range(40):
                image.putpixel((x, y), ((x * 37 + y * 91) % 256, (x * 11) % 256, (y * 53) % 256))

        cropped = entropy_crop(image, 40)

        assert len(set(cropped.getdata())) > 1


def test_normalize_prefix():
    assert normalize_prefix("exhibitions/abc") == "exhibitions/abc/"
    assert normalize_prefix("exhibitions/abc/") == "exhibitions/abc/"
    assert normalize_prefix(" exhibitions/abc ") == "exhibitions/abc/"


class TestRibbonCompositorBuild:
    @pytest.fixture
    def compositor(self, storage) -> RibbonCompositor:
        return RibbonCompositor(storage, bucket=BUCKET, tile_size=40, tiles_per_row=9, fetch_concurrency=3)

    async def test_builds_and_publishes(self, compositor, storage, make_image, decode):
        colors = [RED, GREEN, BLUE] * 7
        for i, color in enumerate(colors):
            storage.seed(BUCKET, f"exhibitions/abc/thumbs/{i:03d}.jpg", make_image(60, 40, color=color))

        result = await compositor.build("exhibitions/abc")

        assert result is not None
        assert result.location.key == "exhibitions/abc/ribbon.jpg"
        assert result.tile_count == 21
        assert (result.width, result.height) == (360, 120)

        stored = storage.object(BUCKET, "exhibitions/abc/ribbon.jpg")
        assert stored.acl == RIBBON_ACL
        assert stored.content_type == "image/jpeg"
        ribbon = decode(stored.data)
        assert ribbon.size == (360, 120)
        # Tile 9 starts the second row.
        assert _close(ribbon.getpixel((20, 60)), colors[9], tolerance=20)
        assert _close(ribbon.getpixel((60, 60)), colors[10], tolerance=20)

    async def test_only_thumbs_dir_used(self, compositor, storage, make_image):
        storage.seed(BUCKET, "exhibitions/abc/thumbs/a.jpg", make_image(40, 40))
        storage.seed(BUCKET, "exhibitions/abc/thumbs/", b"")
        storage.seed(BUCKET, "exhibitions/abc/index.html", b"<html/>", "text/html")

        result = await compositor.build("exhibitions/abc")

        assert result.tile_count == 1
        assert (result.width, result.height) == (40, 40)

    async def test_no_thumbnails_produces_nothing(self, compositor, storage):
        storage.seed(BUCKET, "exhibitions/abc/index.html", b"<html/>", "text/html")

        assert await compositor.build("exhibitions/abc") is None
        assert storage.keys(BUCKET) == ["exhibitions/abc/index.html"]

    @pytest.mark.parametrize("prefix", ["", "   "])
    async def test_empty_prefix_rejected(self, compositor, storage, make_image, prefix):
        storage.seed(BUCKET, "thumbs/a.jpg", make_image(40, 40))

        with pytest.raises(InvalidEvent):
            await compositor.build(prefix)

        assert storage.object(BUCKET, "ribbon.jpg") is None

    async def test_decode_failure_publishes_nothing(self, compositor, storage, make_image):
        storage.seed(BUCKET, "p/thumbs/0.jpg", make_image(40, 40))
        storage.seed(BUCKET, "p/thumbs/1.jpg", b"not an image")

        with pytest.raises(DecodeError):
            await compositor.build("p")

        assert storage.object(BUCKET, "p/ribbon.jpg") is None
