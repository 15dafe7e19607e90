"""Unit tests for the render pipeline."""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select

from newsreel_engine.adapters.renderer.base import RenderJob, RenderResult
from newsreel_engine.adapters.renderer.stub import StubRendererProvider
from newsreel_engine.db.models import VideoAssetModel, VideoModel
from newsreel_engine.domain.enums import AssetType
from newsreel_engine.domain.metadata import AudioMetadata, SlideImageMetadata
from newsreel_engine.errors import DataIntegrityError
from newsreel_engine.jobs.render_pipeline import (
    DEFAULT_BLOCK_REASON,
    apply_upload_gate,
    collect_timeline_inputs,
    run_video_render,
)
from newsreel_engine.services.repository import NewAsset, VideoRepository
from newsreel_engine.services.storage import StoredObject

SLIDE_DURATIONS_MS = [3000, 4500, 3200, 5000, 2800, 4100]


def stored(key: str, mime_type: str) -> StoredObject:
    return StoredObject(
        key=key,
        public_url=f"https://cdn.test/media/{key}",
        size=10,
        mime_type=mime_type,
        checksum="0" * 64,
    )


def seed_assets(session, video_id: int, durations: list[int], audio_indices=None) -> None:
    repo = VideoRepository(session)
    repo.replace_assets(
        video_id,
        [AssetType.SLIDE_IMAGE],
        [
            NewAsset(
                AssetType.SLIDE_IMAGE,
                i,
                stored(f"slide-{i}.png", "image/png"),
                SlideImageMetadata(slide_index=i, width=360, height=640, model="m"),
            )
            for i in range(len(durations))
        ],
    )
    for i in audio_indices if audio_indices is not None else range(len(durations)):
        repo.add_asset(
            video_id,
            NewAsset(
                AssetType.SLIDE_AUDIO,
                i,
                stored(f"audio-{i}.wav", "audio/wav"),
                AudioMetadata(
                    slide_index=i,
                    voice_name="Kore",
                    duration_ms=durations[i],
                    sample_rate=24000,
                    channels=1,
                    bit_depth=16,
                ),
            ),
        )
    session.commit()


def asset_row(index: int, url: str | None = "https://cdn.test/a", metadata=None) -> VideoAssetModel:
    return VideoAssetModel(
        id=index + 100,
        asset_type="slide_audio",
        asset_index=index,
        storage_key=f"k{index}",
        public_url=url,
        mime_type="audio/wav",
        metadata_=metadata,
    )


def audio_meta(index: int, duration_ms: int) -> dict:
    return AudioMetadata(
        slide_index=index,
        voice_name="Kore",
        duration_ms=duration_ms,
        sample_rate=24000,
        channels=1,
        bit_depth=16,
    ).to_json()


class RecordingRenderer(StubRendererProvider):
    def __init__(self) -> None:
        self.jobs: list[RenderJob] = []

    async def render(self, job: RenderJob) -> RenderResult:
        self.jobs.append(job)
        return await super().render(job)


@pytest.fixture
def renderer():
    recording = RecordingRenderer()
    with patch("newsreel_engine.jobs.render_pipeline.get_renderer_provider", return_value=recording):
        yield recording


@pytest.fixture(autouse=True)
def publish_task():
    with patch("newsreel_engine.jobs.render_pipeline.publish_video_task") as task:
        yield task


@pytest.fixture
def ready_video(db_session, make_video, pipeline_sessions, object_store):
    """A six-slide video whose images and narration are generated."""
    video_id = make_video(slide_count=6, asset_status="generated")
    seed_assets(db_session, video_id, SLIDE_DURATIONS_MS)
    return video_id


class TestRenderPipelineHelpers:
    """Tests for render pipeline helper functions."""

    def test_get_renderer_provider_stub(self):
        """Test that stub renderer is returned by default."""
        with patch("newsreel_engine.jobs.render_pipeline.settings") as mock_settings:
            mock_settings.renderer_provider = "stub"

            from newsreel_engine.jobs.render_pipeline import get_renderer_provider

            assert isinstance(get_renderer_provider(), StubRendererProvider)

    def test_get_renderer_provider_e2b(self):
        """Test that the sandboxed Remotion renderer is returned when configured."""
        with patch("newsreel_engine.jobs.render_pipeline.settings") as mock_settings:
            mock_settings.renderer_provider = "e2b"

            from newsreel_engine.adapters.renderer.e2b_remotion import E2BRemotionRenderer
            from newsreel_engine.jobs.render_pipeline import get_renderer_provider

            assert isinstance(get_renderer_provider(), E2BRemotionRenderer)

    def test_upload_gate_block(self):
        video = MagicMock(policy_overall_status="BLOCK", policy_block_reasons=["A: x", "B: y"])

        apply_upload_gate(video)

        assert video.upload_status == "blocked"
        assert video.upload_privacy is None
        assert video.upload_error == "Policy BLOCK: A: x | B: y"

    def test_upload_gate_block_without_reasons(self):
        video = MagicMock(policy_overall_status="BLOCK", policy_block_reasons=None)

        apply_upload_gate(video)

        assert video.upload_error == f"Policy BLOCK: {DEFAULT_BLOCK_REASON}"

    @pytest.mark.parametrize(
        ("overall", "privacy"),
        [("CLEAN", "public"), ("WARN", "private"), ("REVIEW", "private"), ("PENDING", "private")],
    )
    def test_upload_gate_privacy(self, overall, privacy):
        video = MagicMock(policy_overall_status=overall)

        apply_upload_gate(video)

        assert video.upload_status == "pending"
        assert video.upload_privacy == privacy
        assert video.upload_error is None


class TestCollectTimelineInputs:
    """Tests for pairing images with narration."""

    def test_pairs_by_index(self):
        images = [asset_row(i, f"https://cdn.test/img-{i}") for i in (1, 0)]
        audio = [asset_row(i, f"https://cdn.test/aud-{i}", audio_meta(i, 1000 + i)) for i in (0, 1)]

        inputs = collect_timeline_inputs(images, audio, ["First", "Second"])

        assert [(t.slide_index, t.image_url, t.duration_ms, t.headline) for t in inputs] == [
            (0, "https://cdn.test/img-0", 1000, "First"),
            (1, "https://cdn.test/img-1", 1001, "Second"),
        ]

    def test_count_mismatch(self):
        with pytest.raises(DataIntegrityError, match="does not match"):
            collect_timeline_inputs(
                [asset_row(0), asset_row(1)], [asset_row(0, metadata=audio_meta(0, 1))]
            )

    def test_missing_duration(self):
        metadata = audio_meta(0, 1)
        del metadata["durationMs"]

        with pytest.raises(DataIntegrityError, match=r"invalid metadata \(durationMs\)"):
            collect_timeline_inputs([asset_row(0)], [asset_row(0, metadata=metadata)])

    def test_no_metadata(self):
        with pytest.raises(DataIntegrityError, match="no durationMs metadata"):
            collect_timeline_inputs([asset_row(0)], [asset_row(0)])

    def test_audio_without_image(self):
        with pytest.raises(DataIntegrityError, match="No slide image for slide 1"):
            collect_timeline_inputs([asset_row(0)], [asset_row(1, metadata=audio_meta(1, 1))])

    def test_missing_url(self):
        with pytest.raises(DataIntegrityError, match="no public URL"):
            collect_timeline_inputs([asset_row(0, url=None)], [asset_row(0, metadata=audio_meta(0, 1))])

    def test_empty(self):
        with pytest.raises(DataIntegrityError):
            collect_timeline_inputs([], [])


class TestRunVideoRender:
    """Tests for run_video_render."""

    def test_six_slide_render(self, ready_video, renderer, pipeline_sessions, publish_task):
        result = run_video_render(ready_video)

        assert result["success"] is True, result
        assert result["publish_enqueued"] is True
        publish_task.delay.assert_called_once_with(ready_video)
        assert result["total_frames"] == 678
        assert result["duration_ms"] == 22600

        job = renderer.jobs[0]
        assert job.article_date == "2026-03-02"
        props = job.render_props()
        assert props["durationInFrames"] == 678
        assert [s["startFrame"] for s in props["slides"]] == [0, 90, 225, 321, 471, 555]
        assert props["slides"][0]["headline"] == "Headline 0"

        with pipeline_sessions() as session:
            video = session.get(VideoModel, ready_video)
            assert video.render_status == "rendered"
            assert video.render_completed_at is not None
            assert video.upload_status == "pending"
            rendered = session.execute(
                select(VideoAssetModel).where(VideoAssetModel.asset_type == "rendered_video")
            ).scalar_one()
            assert rendered.mime_type == "video/mp4"
            assert rendered.public_url == result["public_url"]
            assert rendered.metadata_["durationMs"] == 22600

    def test_rerender_replaces_video(self, ready_video, renderer, pipeline_sessions):
        assert run_video_render(ready_video)["success"]

        assert run_video_render(ready_video)["success"]

        with pipeline_sessions() as session:
            rows = session.execute(
                select(VideoAssetModel).where(VideoAssetModel.asset_type == "rendered_video")
            ).scalars().all()
            assert len(rows) == 1

    def test_assets_not_generated(self, make_video, pipeline_sessions, object_store, renderer):
        video_id = make_video()

        result = run_video_render(video_id)

        assert result["success"] is False
        assert renderer.jobs == []
        with pipeline_sessions() as session:
            video = session.get(VideoModel, video_id)
            assert video.render_status == "error"
            assert "assets are not generated" in video.render_error

    def test_already_rendering(self, db_session, make_video, pipeline_sessions, object_store):
        video_id = make_video(asset_status="generated", render_status="rendering")

        result = run_video_render(video_id)

        assert result["success"] is False
        with pipeline_sessions() as session:
            video = session.get(VideoModel, video_id)
            assert video.render_status == "rendering"
            assert video.render_error is None

    def test_missing_audio(self, db_session, make_video, pipeline_sessions, object_store, renderer):
        video_id = make_video(slide_count=3, asset_status="generated")
        seed_assets(db_session, video_id, [1000, 1000, 1000], audio_indices=[0, 1])

        result = run_video_render(video_id)

        assert result["success"] is False
        assert "does not match" in result["error"]
        assert renderer.jobs == []

    def test_renderer_failure(self, ready_video, pipeline_sessions):
        failing = MagicMock()

        async def render(job):
            return RenderResult(success=False, error_message="composition crashed")

        failing.render = render
        with patch("newsreel_engine.jobs.render_pipeline.get_renderer_provider", return_value=failing):
            result = run_video_render(ready_video)

        assert result["success"] is False
        assert result["error"] == "composition crashed"
        with pipeline_sessions() as session:
            video = session.get(VideoModel, ready_video)
            assert video.render_status == "error"
            assert video.render_error == "composition crashed"

    def test_blocked_video_stays_blocked(
        self, db_session, make_video, pipeline_sessions, object_store, renderer, publish_task
    ):
        video_id = make_video(
            slide_count=2,
            asset_status="generated",
            policy_overall_status="BLOCK",
            policy_block_reasons=["VISUAL_HARMFUL_GRAPHIC: gore"],
        )
        seed_assets(db_session, video_id, [1000, 2000])

        result = run_video_render(video_id)

        assert result["success"] is True
        assert result["publish_enqueued"] is False
        publish_task.delay.assert_not_called()
        with pipeline_sessions() as session:
            video = session.get(VideoModel, video_id)
            assert video.upload_status == "blocked"
            assert video.upload_privacy is None
