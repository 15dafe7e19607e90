"""Stub renderer provider for testing."""

import struct

from newsreel_engine.adapters.renderer.base import RendererProvider, RenderJob, RenderResult
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)


def _box(kind: bytes, payload: bytes) -> bytes:
    return struct.pack(">I", 8 + len(payload)) + kind + payload


def minimal_mp4() -> bytes:
    """An ftyp box followed by an empty mdat box."""
    ftyp = _box(b"ftyp", b"isom" + struct.pack(">I", 512) + b"isomiso2avc1mp41")
    return ftyp + _box(b"mdat", b"")


class StubRendererProvider(RendererProvider):
    """Reports the timeline's own length without rendering anything."""

    @property
    def name(self) -> str:
        return "stub"

    async def render(self, job: RenderJob) -> RenderResult:
        width, height = job.dimensions
        logger.info(
            "stub_render_completed",
            video_id=job.video_id,
            total_frames=job.timeline.total_frames,
            size=f"{width}x{height}",
        )
        return RenderResult(
            success=True,
            video_data=minimal_mp4(),
            mime_type="video/mp4",
            width=width,
            height=height,
            duration_ms=job.timeline.duration_ms,
            fps=job.timeline.fps,
            video_codec="h264",
            audio_codec="aac",
            format="mp4",
            metadata={"provider": self.name},
        )
