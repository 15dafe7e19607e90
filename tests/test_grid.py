"""Tests for grid planning and decomposition."""

import io

import pytest
from PIL import Image

from newsreel_engine.domain.enums import VideoType
from newsreel_engine.errors import GridDecodeError, PreconditionError
from newsreel_engine.services.grid import (
    THUMBNAIL_CELL,
    cell_crop_rect,
    encode_png,
    grid_count_for,
    layout_for_size,
    plan_grid_layouts,
    split_grid,
)

CELL_COLOURS = [
    (200, 30, 30),
    (30, 200, 30),
    (30, 30, 200),
    (200, 200, 30),
    (200, 30, 200),
    (30, 200, 200),
    (120, 120, 120),
    (250, 150, 50),
    (90, 60, 160),
]


def make_grid_image(width: int, height: int) -> bytes:
    """A 3x3 grid where every cell is a distinct solid colour."""
    image = Image.new("RGB", (width, height), (0, 0, 0))
    cell_w, cell_h = width // 3, height // 3
    for cell, colour in enumerate(CELL_COLOURS):
        row, col = divmod(cell, 3)
        image.paste(colour, (col * cell_w, row * cell_h, (col + 1) * cell_w, (row + 1) * cell_h))
    return encode_png(image)


def open_png(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


class TestGridPlanning:
    """Tests for cell assignment."""

    def test_grid_count(self):
        assert grid_count_for(1) == 1
        assert grid_count_for(8) == 1
        assert grid_count_for(9) == 2
        assert grid_count_for(17) == 2

    def test_short_video_fits_one_grid(self):
        layouts = plan_grid_layouts(8, VideoType.SHORT)

        assert len(layouts) == 1
        positions = layouts[0].positions
        assert [c.slide_index for c in positions[:8]] == list(range(8))
        assert positions[THUMBNAIL_CELL].is_thumbnail
        assert positions[THUMBNAIL_CELL].slide_index is None

    def test_long_video_uses_two_grids(self):
        layouts = plan_grid_layouts(17, VideoType.LONG)

        assert len(layouts) == 2
        assert [c.slide_index for c in layouts[0].positions] == list(range(9))
        assert layouts[0].thumbnail_cell() is None
        second = layouts[1].positions
        assert [c.slide_index for c in second[:8]] == list(range(9, 17))
        assert second[THUMBNAIL_CELL].is_thumbnail

    def test_unused_cells_are_empty(self):
        layout = plan_grid_layouts(5, VideoType.SHORT)[0]

        empty = [c.cell for c in layout.positions if c.is_empty]
        assert empty == [5, 6, 7]
        assert layout.positions[THUMBNAIL_CELL].is_thumbnail

    def test_requested_dimensions(self):
        short = plan_grid_layouts(3, VideoType.SHORT, "4K")[0]
        long = plan_grid_layouts(3, VideoType.LONG, "1K")[0]

        assert (short.width, short.height) == (3072, 5504)
        assert short.aspect_ratio == "9:16"
        assert (long.width, long.height) == (1376, 768)
        assert long.aspect_ratio == "16:9"

    def test_too_many_slides(self):
        with pytest.raises(PreconditionError):
            plan_grid_layouts(18, VideoType.LONG)

    def test_no_slides(self):
        with pytest.raises(ValueError):
            plan_grid_layouts(0, VideoType.SHORT)

    def test_cell_crop_rect_row_major(self):
        rect = cell_crop_rect(5, 100, 200)

        assert (rect.x, rect.y, rect.w, rect.h) == (200, 200, 100, 200)


class TestGridSplit:
    """Tests for cutting grid images into slides."""

    def test_slides_match_cell_pixels(self):
        layout = plan_grid_layouts(8, VideoType.SHORT, "1K")[0]
        split = split_grid(make_grid_image(300, 600), layout)

        assert [s.slide_index for s in split.slides] == list(range(8))
        for piece in split.slides:
            image = open_png(piece.data)
            assert image.size == (100, 200)
            expected = CELL_COLOURS[piece.cell]
            assert image.convert("RGB").getpixel((0, 0)) == expected
            assert image.convert("RGB").getpixel((99, 199)) == expected

        assert split.thumbnail is not None
        thumb = open_png(split.thumbnail.data).convert("RGB")
        assert thumb.getpixel((50, 100)) == CELL_COLOURS[THUMBNAIL_CELL]

    def test_crop_uses_decoded_size_not_requested(self):
        layout = plan_grid_layouts(8, VideoType.SHORT, "4K")[0]
        split = split_grid(make_grid_image(302, 601), layout)

        assert (split.layout.width, split.layout.height) == (302, 601)
        assert (split.layout.cell_width, split.layout.cell_height) == (100, 200)
        assert all((s.width, s.height) == (100, 200) for s in split.slides)
        rect = split.layout.positions[4].crop_rect
        assert (rect.x, rect.y) == (100, 200)

    def test_empty_cells_are_skipped(self):
        layout = plan_grid_layouts(3, VideoType.SHORT, "1K")[0]
        split = split_grid(make_grid_image(300, 600), layout)

        assert [s.slide_index for s in split.slides] == [0, 1, 2]
        assert split.thumbnail is not None

    def test_slides_are_independent_images(self):
        layout = plan_grid_layouts(8, VideoType.SHORT, "1K")[0]
        split = split_grid(make_grid_image(300, 600), layout)

        first = split.slides[0].data
        second = split.slides[1].data
        assert first != second

    def test_undecodable_grid_raises(self):
        layout = plan_grid_layouts(3, VideoType.SHORT)[0]

        with pytest.raises(GridDecodeError):
            split_grid(b"not an image", layout)

    def test_tiny_grid_raises(self):
        layout = plan_grid_layouts(3, VideoType.SHORT)[0]

        with pytest.raises(GridDecodeError):
            layout_for_size(layout, 2, 2)
