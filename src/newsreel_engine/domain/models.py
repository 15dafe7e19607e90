"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Slide:
    """One narrated segment of a video script."""

    headline: str
    image_description: str  # English, fed to the image model
    narration: str  # Source language, fed to TTS
    estimated_duration: float = 0.0  # seconds
    director_notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Slide":
        """Create from the stored script JSON."""
        return cls(
            headline=data.get("headline", ""),
            image_description=data.get("imageDescription", data.get("image_description", "")),
            narration=data.get("narration", ""),
            estimated_duration=float(
                data.get("estimatedDuration", data.get("estimated_duration", 0.0)) or 0.0
            ),
            director_notes=data.get("directorNotes", data.get("director_notes")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "headline": self.headline,
            "imageDescription": self.image_description,
            "narration": self.narration,
            "estimatedDuration": self.estimated_duration,
            "directorNotes": self.director_notes,
        }


@dataclass
class VideoScript:
    """Immutable script produced by the (external) script stage."""

    title: str
    slides: list[Slide]
    thumbnail_description: str
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VideoScript":
        """Create from the stored script JSON."""
        return cls(
            title=data.get("title", ""),
            slides=[Slide.from_dict(s) for s in data.get("slides", [])],
            thumbnail_description=data.get(
                "thumbnailDescription", data.get("thumbnail_description", "")
            ),
            description=data.get("description"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "thumbnailDescription": self.thumbnail_description,
            "slides": [s.to_dict() for s in self.slides],
        }


@dataclass
class ArticleContext:
    """Source article details the pipelines read."""

    id: int
    title: str
    content: str | None = None
    source_url: str | None = None
    image_urls: list[str] = field(default_factory=list)
    published_at: datetime | None = None
