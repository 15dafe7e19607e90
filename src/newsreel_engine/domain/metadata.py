"""Typed metadata stored alongside each generated asset.

Each asset type has exactly one schema. Values are serialised with camelCase
keys so stored rows keep the JSON shape the admin surface reads.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from newsreel_engine.domain.enums import AssetType


class _AssetMetadataBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        """Serialise for the metadata column."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CropRect(_AssetMetadataBase):
    """Pixel rectangle of one grid cell."""

    x: int
    y: int
    w: int
    h: int

    def box(self) -> tuple[int, int, int, int]:
        """Pillow crop box (left, upper, right, lower)."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)


class GridCell(_AssetMetadataBase):
    """One of the nine cells of a composite grid."""

    cell: int = Field(ge=0, le=8)
    slide_index: int | None = None
    is_thumbnail: bool = False
    is_empty: bool = False
    crop_rect: CropRect | None = None


class GridLayout(_AssetMetadataBase):
    """Metadata of a grid_image asset."""

    grid_index: int
    aspect_ratio: str
    width: int
    height: int
    cell_width: int
    cell_height: int
    positions: list[GridCell]
    model: str | None = None

    def slide_cells(self) -> list[GridCell]:
        return [c for c in self.positions if c.slide_index is not None and not c.is_empty]

    def thumbnail_cell(self) -> GridCell | None:
        return next((c for c in self.positions if c.is_thumbnail), None)


class SlideImageMetadata(_AssetMetadataBase):
    """Metadata of slide_image and thumbnail_image assets."""

    slide_index: int | None = None
    width: int
    height: int
    model: str
    grid_index: int | None = None
    cell: int | None = None
    is_thumbnail: bool = False


class AudioMetadata(_AssetMetadataBase):
    """Metadata of a slide_audio asset. Duration is derived from PCM size."""

    slide_index: int
    voice_name: str
    duration_ms: int
    sample_rate: int
    channels: int
    bit_depth: int
    model: str | None = None


class PromptMetadata(_AssetMetadataBase):
    """Metadata of an image_generation_prompt asset."""

    grid_index: int
    model: str
    resolution: str


class RenderMetadata(_AssetMetadataBase):
    """Metadata of the rendered_video asset."""

    width: int
    height: int
    duration_ms: int
    fps: int
    video_codec: str
    audio_codec: str
    format: str
    total_frames: int | None = None


AssetMetadata = GridLayout | SlideImageMetadata | AudioMetadata | PromptMetadata | RenderMetadata

METADATA_SCHEMAS: dict[AssetType, type[_AssetMetadataBase]] = {
    AssetType.GRID_IMAGE: GridLayout,
    AssetType.SLIDE_IMAGE: SlideImageMetadata,
    AssetType.THUMBNAIL_IMAGE: SlideImageMetadata,
    AssetType.SLIDE_AUDIO: AudioMetadata,
    AssetType.IMAGE_GENERATION_PROMPT: PromptMetadata,
    AssetType.RENDERED_VIDEO: RenderMetadata,
}


def parse_asset_metadata(asset_type: str, data: dict[str, Any] | None) -> AssetMetadata | None:
    """Load the stored metadata of an asset into its typed schema.

    Returns None when nothing was stored. Raises pydantic.ValidationError when
    the stored blob does not match the schema for its asset type.
    """
    if not data:
        return None
    schema = METADATA_SCHEMAS[AssetType(asset_type)]
    return schema.model_validate(data)  # type: ignore[return-value]


def check_metadata_type(asset_type: str, metadata: AssetMetadata) -> None:
    """Raise TypeError when metadata does not belong to asset_type."""
    expected = METADATA_SCHEMAS[AssetType(asset_type)]
    if not isinstance(metadata, expected):
        raise TypeError(
            f"{type(metadata).__name__} is not valid metadata for {asset_type} "
            f"(expected {expected.__name__})"
        )
