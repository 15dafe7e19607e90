"""Base interface for video composition renderers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from newsreel_engine.domain.enums import VideoType
from newsreel_engine.services.timeline import RenderTimeline

# Output frame size per video type (width, height)
OUTPUT_DIMENSIONS: dict[VideoType, tuple[int, int]] = {
    VideoType.SHORT: (1080, 1920),
    VideoType.LONG: (1920, 1080),
}


@dataclass
class RenderJob:
    """Everything the composition needs to render one video."""

    video_id: int
    video_type: VideoType
    timeline: RenderTimeline
    article_date: str | None = None

    @property
    def dimensions(self) -> tuple[int, int]:
        return OUTPUT_DIMENSIONS[self.video_type]

    def render_props(self) -> dict[str, Any]:
        return self.timeline.to_render_props(str(self.video_type), self.article_date)


@dataclass
class RenderResult:
    """Result from a render: the encoded file and what the prober saw."""

    success: bool
    video_data: bytes | None = None
    mime_type: str = "video/mp4"
    width: int | None = None
    height: int | None = None
    duration_ms: int | None = None
    fps: int | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    format: str = "mp4"
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class RendererProvider(ABC):
    """Abstract base class for video renderers.

    Implementations:
    - E2BRemotionRenderer: Remotion composition inside an isolated e2b sandbox
    - StubRendererProvider: Returns a minimal MP4 container for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def render(self, job: RenderJob) -> RenderResult:
        """Render the timeline to an encoded video file.

        Args:
            job: Timeline, video type and overlay data

        Returns:
            RenderResult with the file bytes or error information
        """
        ...

    async def health_check(self) -> bool:
        return True
