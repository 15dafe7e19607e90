"""Tests for the composition timing model."""

import pytest

from newsreel_engine.errors import DataIntegrityError
from newsreel_engine.services.timeline import (
    FADE_FRAMES,
    TimelineInput,
    build_timeline,
    frames_for_duration,
    opacity_at,
    scale_at,
)

DURATIONS_MS = [3000, 4500, 3200, 5000, 2800, 4100]


def make_inputs(durations: list[int]) -> list[TimelineInput]:
    return [
        TimelineInput(
            slide_index=i,
            image_url=f"https://cdn.test/slide-{i}.png",
            audio_url=f"https://cdn.test/audio-{i}.wav",
            duration_ms=d,
        )
        for i, d in enumerate(durations)
    ]


class TestFrameMath:
    """Tests for frame conversion."""

    @pytest.mark.parametrize(
        ("duration_ms", "frames"),
        [(3000, 90), (4500, 135), (3200, 96), (2800, 84), (4100, 123), (1, 1), (33, 1), (34, 2)],
    )
    def test_frames_round_up(self, duration_ms, frames):
        assert frames_for_duration(duration_ms) == frames


class TestBuildTimeline:
    """Tests for laying slides out back to back."""

    def test_total_frames_and_duration(self):
        timeline = build_timeline(make_inputs(DURATIONS_MS))

        assert timeline.total_frames == 678
        assert timeline.duration_ms == 22600

    def test_slides_are_contiguous(self):
        timeline = build_timeline(make_inputs(DURATIONS_MS))

        assert timeline.slides[0].start_frame == 0
        for previous, current in zip(timeline.slides, timeline.slides[1:]):
            assert current.start_frame == previous.end_frame
        assert timeline.slides[-1].end_frame == timeline.total_frames

    def test_slides_ordered_by_index(self):
        inputs = list(reversed(make_inputs(DURATIONS_MS)))
        timeline = build_timeline(inputs)

        assert [s.slide_index for s in timeline.slides] == list(range(6))

    def test_fades_skip_first_and_last(self):
        timeline = build_timeline(make_inputs(DURATIONS_MS))

        assert not timeline.slides[0].fade_in
        assert timeline.slides[0].fade_out
        assert timeline.slides[-1].fade_in
        assert not timeline.slides[-1].fade_out

    def test_zoom_alternates(self):
        timeline = build_timeline(make_inputs(DURATIONS_MS))

        assert timeline.slides[0].zoom_direction == "in"
        assert timeline.slides[1].zoom_direction == "out"

    def test_empty_input(self):
        with pytest.raises(DataIntegrityError):
            build_timeline([])

    def test_duplicate_index(self):
        inputs = make_inputs([1000, 1000])
        inputs[1] = TimelineInput(0, "a", "b", 1000)

        with pytest.raises(DataIntegrityError):
            build_timeline(inputs)

    def test_zero_duration(self):
        with pytest.raises(DataIntegrityError):
            build_timeline(make_inputs([1000, 0]))

    def test_render_props(self):
        timeline = build_timeline(make_inputs(DURATIONS_MS))
        props = timeline.to_render_props("short", "2026-03-02")

        assert props["durationInFrames"] == 678
        assert props["fps"] == 30
        assert props["videoType"] == "short"
        assert props["articleDate"] == "2026-03-02"
        assert props["slides"][1]["startFrame"] == 90
        assert props["slides"][1]["durationInFrames"] == 135


class TestAnimation:
    """Tests for per-frame opacity and scale."""

    def test_opacity_fades_in_and_out(self):
        slide = build_timeline(make_inputs(DURATIONS_MS)).slides[1]

        assert opacity_at(slide, 0) == 0.0
        assert opacity_at(slide, FADE_FRAMES) == 1.0
        assert opacity_at(slide, slide.duration_in_frames) == 0.0

    def test_first_slide_starts_opaque(self):
        slide = build_timeline(make_inputs(DURATIONS_MS)).slides[0]

        assert opacity_at(slide, 0) == 1.0

    def test_scale_interpolates(self):
        slide = build_timeline(make_inputs(DURATIONS_MS)).slides[0]

        assert scale_at(slide, 0) == pytest.approx(1.0)
        assert scale_at(slide, slide.duration_in_frames) == pytest.approx(1.2)
        assert scale_at(slide, slide.duration_in_frames // 2) == pytest.approx(1.1, abs=0.01)
