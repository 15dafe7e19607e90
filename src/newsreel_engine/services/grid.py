"""Composite grid planning and decomposition.

Grid-capable image models draw up to nine slides into one 3x3 image. This
module plans which slide goes in which cell and cuts a generated grid back
into independent slide images. Crop rectangles always come from the decoded
pixel size, since models do not reliably honour the requested dimensions.
"""

import io
import math
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from newsreel_engine.domain.enums import VideoType
from newsreel_engine.domain.metadata import CropRect, GridCell, GridLayout
from newsreel_engine.errors import GridDecodeError, PreconditionError
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

GRID_SIZE = 3
CELLS_PER_GRID = GRID_SIZE * GRID_SIZE
THUMBNAIL_CELL = 8
MAX_GRIDS = 2

# Requested composite sizes per resolution tier (width, height)
GRID_DIMENSIONS: dict[str, dict[VideoType, tuple[int, int]]] = {
    "1K": {VideoType.SHORT: (768, 1376), VideoType.LONG: (1376, 768)},
    "2K": {VideoType.SHORT: (1536, 2752), VideoType.LONG: (2752, 1536)},
    "4K": {VideoType.SHORT: (3072, 5504), VideoType.LONG: (5504, 3072)},
}

# Requested size of individually generated slides
SLIDE_DIMENSIONS: dict[VideoType, tuple[int, int]] = {
    VideoType.SHORT: (768, 1344),
    VideoType.LONG: (1344, 768),
}

ASPECT_RATIOS: dict[VideoType, str] = {
    VideoType.SHORT: "9:16",
    VideoType.LONG: "16:9",
}

# Modes PNG can hold without conversion
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


@dataclass
class GridSlide:
    """One image cut out of a grid."""

    cell: int
    slide_index: int | None
    data: bytes
    width: int
    height: int
    is_thumbnail: bool = False
    mime_type: str = "image/png"


@dataclass
class GridSplit:
    """Output of decomposing one grid image."""

    layout: GridLayout  # recomputed from the decoded size
    slides: list[GridSlide]
    thumbnail: GridSlide | None = None


def grid_count_for(slide_count: int) -> int:
    """Grids needed for slide_count slides plus one thumbnail cell."""
    return math.ceil((slide_count + 1) / CELLS_PER_GRID)


def max_slides_for_grids() -> int:
    return MAX_GRIDS * CELLS_PER_GRID - 1


def cell_crop_rect(cell: int, cell_width: int, cell_height: int) -> CropRect:
    """Crop rectangle of a cell: row = cell // 3, col = cell % 3."""
    if not 0 <= cell < CELLS_PER_GRID:
        raise ValueError(f"Cell index out of range: {cell}")
    row, col = divmod(cell, GRID_SIZE)
    return CropRect(x=col * cell_width, y=row * cell_height, w=cell_width, h=cell_height)


def plan_grid_layouts(
    slide_count: int,
    video_type: VideoType | str,
    resolution: str = "4K",
) -> list[GridLayout]:
    """Assign slides to grid cells.

    Slides fill cells in order; the last grid reserves cell 8 for the
    thumbnail and any cell left over is an empty (black) placeholder. A short
    video with 8 slides fits one grid; a long video with 17 slides uses two
    (slides 0-8, then slides 9-16 plus the thumbnail).

    Args:
        slide_count: Number of script slides
        video_type: short or long
        resolution: Requested size tier (1K, 2K, 4K)

    Returns:
        One layout per grid, with crop rectangles for the requested size
    """
    video_type = VideoType(video_type)
    if slide_count < 1:
        raise ValueError("A grid needs at least one slide")
    if slide_count > max_slides_for_grids():
        raise PreconditionError(
            f"{slide_count} slides exceed the grid capacity of {max_slides_for_grids()}"
        )
    if resolution not in GRID_DIMENSIONS:
        raise ValueError(f"Unknown grid resolution: {resolution}")

    width, height = GRID_DIMENSIONS[resolution][video_type]
    cell_width, cell_height = width // GRID_SIZE, height // GRID_SIZE
    grid_total = grid_count_for(slide_count)

    layouts: list[GridLayout] = []
    next_slide = 0
    for grid_index in range(grid_total):
        is_last_grid = grid_index == grid_total - 1
        positions: list[GridCell] = []
        for cell in range(CELLS_PER_GRID):
            crop = cell_crop_rect(cell, cell_width, cell_height)
            if is_last_grid and cell == THUMBNAIL_CELL:
                positions.append(GridCell(cell=cell, is_thumbnail=True, crop_rect=crop))
            elif next_slide < slide_count:
                positions.append(GridCell(cell=cell, slide_index=next_slide, crop_rect=crop))
                next_slide += 1
            else:
                positions.append(GridCell(cell=cell, is_empty=True, crop_rect=crop))
        layouts.append(
            GridLayout(
                grid_index=grid_index,
                aspect_ratio=ASPECT_RATIOS[video_type],
                width=width,
                height=height,
                cell_width=cell_width,
                cell_height=cell_height,
                positions=positions,
            )
        )
    return layouts


def layout_for_size(layout: GridLayout, width: int, height: int) -> GridLayout:
    """Recompute cell size and crop rectangles for the actual image size."""
    cell_width, cell_height = width // GRID_SIZE, height // GRID_SIZE
    if cell_width < 1 or cell_height < 1:
        raise GridDecodeError(f"Grid image too small to split: {width}x{height}")
    positions = [
        cell.model_copy(update={"crop_rect": cell_crop_rect(cell.cell, cell_width, cell_height)})
        for cell in layout.positions
    ]
    return layout.model_copy(
        update={
            "width": width,
            "height": height,
            "cell_width": cell_width,
            "cell_height": cell_height,
            "positions": positions,
        }
    )


def decode_image(data: bytes) -> Image.Image:
    """Fully decode image bytes, raising GridDecodeError on failure."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise GridDecodeError(f"Grid image could not be decoded: {e}") from e
    if image.mode not in _PNG_MODES:
        image = image.convert("RGB")
    return image


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _crop_cell(source: Image.Image, cell: GridCell) -> Image.Image:
    if cell.crop_rect is None:
        raise ValueError(f"Cell {cell.cell} has no crop rectangle")
    # Work on a private copy so no two cells share raster state
    return source.copy().crop(cell.crop_rect.box())


def split_grid(data: bytes, layout: GridLayout) -> GridSplit:
    """Cut a generated grid image into slide images and an optional thumbnail.

    The whole grid fails if the image cannot be decoded; nothing is emitted
    for an undecodable grid. Empty cells are skipped.

    Args:
        data: Encoded grid image bytes
        layout: Planned layout (cell to slide assignment)

    Returns:
        GridSplit with slides ordered by slide index
    """
    source = decode_image(data)
    actual = layout_for_size(layout, source.width, source.height)

    if (source.width, source.height) != (layout.width, layout.height):
        logger.info(
            "grid_size_differs_from_request",
            grid_index=layout.grid_index,
            requested=f"{layout.width}x{layout.height}",
            actual=f"{source.width}x{source.height}",
        )

    slides: list[GridSlide] = []
    thumbnail: GridSlide | None = None
    thumbnail_cell = actual.thumbnail_cell()
    cells = actual.slide_cells() + ([thumbnail_cell] if thumbnail_cell is not None else [])
    for cell in cells:
        tile = _crop_cell(source, cell)
        piece = GridSlide(
            cell=cell.cell,
            slide_index=cell.slide_index,
            data=encode_png(tile),
            width=tile.width,
            height=tile.height,
            is_thumbnail=cell.is_thumbnail,
        )
        if cell.is_thumbnail:
            thumbnail = piece
        else:
            slides.append(piece)

    slides.sort(key=lambda s: s.slide_index if s.slide_index is not None else -1)
    logger.info(
        "grid_split_completed",
        grid_index=layout.grid_index,
        slide_count=len(slides),
        has_thumbnail=thumbnail is not None,
        cell_size=f"{actual.cell_width}x{actual.cell_height}",
    )
    return GridSplit(layout=actual, slides=slides, thumbnail=thumbnail)
