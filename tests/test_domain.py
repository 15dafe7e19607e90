"""Tests for domain models and typed asset metadata."""

import pytest
from pydantic import ValidationError

from newsreel_engine.domain.enums import AssetType, VideoType
from newsreel_engine.domain.metadata import (
    AudioMetadata,
    GridLayout,
    PromptMetadata,
    SlideImageMetadata,
    check_metadata_type,
    parse_asset_metadata,
)
from newsreel_engine.domain.models import VideoScript
from newsreel_engine.services.grid import plan_grid_layouts


class TestVideoScript:
    """Tests for script parsing."""

    def test_from_camel_case_json(self):
        script = VideoScript.from_dict(
            {
                "title": "Bridge",
                "thumbnailDescription": "Bridge at dawn",
                "slides": [
                    {
                        "headline": "Reopened",
                        "imageDescription": "Cars crossing",
                        "narration": "The bridge reopened.",
                        "estimatedDuration": 4,
                    }
                ],
            }
        )

        assert script.thumbnail_description == "Bridge at dawn"
        assert script.slides[0].image_description == "Cars crossing"
        assert script.slides[0].estimated_duration == 4.0

    def test_round_trip_keys(self):
        data = VideoScript.from_dict({"title": "t", "slides": [], "thumbnailDescription": "x"})

        assert data.to_dict()["thumbnailDescription"] == "x"


class TestAssetMetadata:
    """Tests for the metadata tagged union."""

    def test_grid_layout_serialises_camel_case(self):
        layout = plan_grid_layouts(3, VideoType.SHORT, "1K")[0]
        data = layout.to_json()

        assert data["gridIndex"] == 0
        assert data["cellWidth"] == 256
        assert data["positions"][0]["cropRect"] == {"x": 0, "y": 0, "w": 256, "h": 458}
        assert data["positions"][8]["isThumbnail"] is True

    def test_parse_by_asset_type(self):
        audio = parse_asset_metadata(
            "slide_audio",
            {
                "slideIndex": 2,
                "voiceName": "Kore",
                "durationMs": 3200,
                "sampleRate": 24000,
                "channels": 1,
                "bitDepth": 16,
            },
        )

        assert isinstance(audio, AudioMetadata)
        assert audio.duration_ms == 3200

    def test_parse_empty(self):
        assert parse_asset_metadata("slide_image", None) is None

    def test_parse_invalid(self):
        with pytest.raises(ValidationError):
            parse_asset_metadata("slide_audio", {"slideIndex": 1})

    def test_grid_metadata_parses_back(self):
        layout = plan_grid_layouts(8, VideoType.LONG, "4K")[0]

        parsed = parse_asset_metadata("grid_image", layout.to_json())

        assert isinstance(parsed, GridLayout)
        assert parsed == layout

    def test_metadata_type_check(self):
        slide = SlideImageMetadata(width=10, height=20, model="m")
        prompt = PromptMetadata(grid_index=0, model="m", resolution="4K")

        check_metadata_type(AssetType.THUMBNAIL_IMAGE, slide)
        with pytest.raises(TypeError):
            check_metadata_type(AssetType.SLIDE_IMAGE, prompt)

    def test_none_fields_are_omitted(self):
        data = SlideImageMetadata(width=10, height=20, model="m").to_json()

        assert "gridIndex" not in data
        assert data["isThumbnail"] is False
