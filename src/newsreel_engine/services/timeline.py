"""Frame-accurate composition timeline for the slide renderer.

Slides play back to back at a fixed frame rate with no overlap: each slide
starts on the frame after the previous one ends, and its narration starts at
the same instant. Fades happen inside a slide's own frame range, so they never
shift the audio.
"""

from dataclasses import dataclass
from typing import Any

from newsreel_engine.errors import DataIntegrityError

FPS = 30
FADE_SECONDS = 1
FADE_FRAMES = FADE_SECONDS * FPS
ZOOM_MIN = 1.0
ZOOM_MAX = 1.2


@dataclass(frozen=True)
class TimelineInput:
    """One slide's media and its measured narration length."""

    slide_index: int
    image_url: str
    audio_url: str
    duration_ms: int
    headline: str | None = None


@dataclass(frozen=True)
class TimelineSlide:
    """A slide placed on the timeline."""

    slide_index: int
    image_url: str
    audio_url: str
    start_frame: int
    duration_in_frames: int
    zoom_start: float
    zoom_end: float
    fade_in: bool
    fade_out: bool
    headline: str | None = None

    @property
    def end_frame(self) -> int:
        """First frame after this slide."""
        return self.start_frame + self.duration_in_frames

    @property
    def audio_offset_seconds(self) -> float:
        return self.start_frame / FPS

    @property
    def zoom_direction(self) -> str:
        return "in" if self.zoom_end > self.zoom_start else "out"


@dataclass(frozen=True)
class RenderTimeline:
    """Ordered, gap-free sequence of slides."""

    slides: tuple[TimelineSlide, ...]
    fps: int = FPS

    @property
    def total_frames(self) -> int:
        return sum(s.duration_in_frames for s in self.slides)

    @property
    def duration_ms(self) -> int:
        return round(self.total_frames * 1000 / self.fps)

    def to_render_props(
        self,
        video_type: str,
        article_date: str | None = None,
    ) -> dict[str, Any]:
        """Input props for the Remotion composition."""
        return {
            "fps": self.fps,
            "durationInFrames": self.total_frames,
            "videoType": video_type,
            "articleDate": article_date,
            "fadeFrames": FADE_FRAMES,
            "slides": [
                {
                    "slideIndex": s.slide_index,
                    "imageUrl": s.image_url,
                    "audioUrl": s.audio_url,
                    "headline": s.headline,
                    "startFrame": s.start_frame,
                    "durationInFrames": s.duration_in_frames,
                    "zoomStart": s.zoom_start,
                    "zoomEnd": s.zoom_end,
                    "fadeIn": s.fade_in,
                    "fadeOut": s.fade_out,
                }
                for s in self.slides
            ],
        }


def frames_for_duration(duration_ms: int, fps: int = FPS) -> int:
    """ceil(duration_ms / 1000 * fps), computed in integers to avoid float drift."""
    return -(-duration_ms * fps // 1000)


def build_timeline(inputs: list[TimelineInput]) -> RenderTimeline:
    """Lay slides out back to back.

    Args:
        inputs: One entry per slide, in any order

    Returns:
        RenderTimeline ordered by slide index

    Raises:
        DataIntegrityError: empty input, duplicate slide indices or a
            non-positive duration
    """
    if not inputs:
        raise DataIntegrityError("Cannot build a timeline without slides")

    ordered = sorted(inputs, key=lambda i: i.slide_index)
    seen: set[int] = set()
    for item in ordered:
        if item.slide_index in seen:
            raise DataIntegrityError(f"Duplicate slide index in timeline: {item.slide_index}")
        seen.add(item.slide_index)
        if item.duration_ms <= 0:
            raise DataIntegrityError(
                f"Invalid duration for slide {item.slide_index}: {item.duration_ms}ms"
            )

    slides: list[TimelineSlide] = []
    start = 0
    last = len(ordered) - 1
    for position, item in enumerate(ordered):
        frames = frames_for_duration(item.duration_ms)
        zoom_in = item.slide_index % 2 == 0
        slides.append(
            TimelineSlide(
                slide_index=item.slide_index,
                image_url=item.image_url,
                audio_url=item.audio_url,
                start_frame=start,
                duration_in_frames=frames,
                zoom_start=ZOOM_MIN if zoom_in else ZOOM_MAX,
                zoom_end=ZOOM_MAX if zoom_in else ZOOM_MIN,
                fade_in=position != 0,
                fade_out=position != last,
                headline=item.headline,
            )
        )
        start += frames

    return RenderTimeline(slides=tuple(slides))


def interpolate(
    frame: float,
    frame_range: tuple[float, float],
    value_range: tuple[float, float],
) -> float:
    """Linear interpolation clamped to the boundary values outside the range."""
    f0, f1 = frame_range
    v0, v1 = value_range
    if f1 == f0:
        return v1 if frame >= f1 else v0
    if frame <= f0:
        return v0
    if frame >= f1:
        return v1
    return v0 + (v1 - v0) * (frame - f0) / (f1 - f0)


def opacity_at(slide: TimelineSlide, local_frame: int) -> float:
    """Slide opacity at a frame relative to the slide's start."""
    opacity = 1.0
    fade = min(FADE_FRAMES, slide.duration_in_frames)
    if slide.fade_in:
        opacity = min(opacity, interpolate(local_frame, (0, fade), (0.0, 1.0)))
    if slide.fade_out:
        end = slide.duration_in_frames
        opacity = min(opacity, interpolate(local_frame, (end - fade, end), (1.0, 0.0)))
    return opacity


def scale_at(slide: TimelineSlide, local_frame: int) -> float:
    """Ken Burns scale at a frame relative to the slide's start."""
    return interpolate(
        local_frame,
        (0, slide.duration_in_frames),
        (slide.zoom_start, slide.zoom_end),
    )
