"""Video render pipeline.

Pipeline steps:
1. validate - assets generated, no render in flight
2. claim - render_status = rendering
3. load-assets - slide images and narration, checked one to one
4. build-timeline - frame-accurate, non-overlapping slide layout
5. render - Remotion composition in an isolated sandbox
6. persist-video - verify container, upload, replace rendered_video asset
7. complete - render_status = rendered, resolve the upload gate
8. enqueue-publish - unless the upload gate is blocked

Each step runs under its own retry policy and commits its own writes.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from newsreel_engine.adapters.renderer.base import RendererProvider, RenderJob, RenderResult
from newsreel_engine.adapters.renderer.e2b_remotion import E2BRemotionRenderer
from newsreel_engine.adapters.renderer.stub import StubRendererProvider
from newsreel_engine.config import settings
from newsreel_engine.db.models import VideoAssetModel, VideoModel
from newsreel_engine.db.session import get_session_context
from newsreel_engine.domain.enums import (
    AssetStatus,
    AssetType,
    PolicyStageStatus,
    RenderStatus,
    UploadStatus,
    VideoType,
)
from newsreel_engine.domain.metadata import AudioMetadata, RenderMetadata, parse_asset_metadata
from newsreel_engine.errors import (
    DataIntegrityError,
    PipelineBusyError,
    PreconditionError,
    RenderError,
)
from newsreel_engine.jobs.publish_pipeline import publish_video_task
from newsreel_engine.logging import get_logger, video_log_context
from newsreel_engine.services.media import verify_video_bytes
from newsreel_engine.services.policy import derive_publish_privacy, normalize_stage_status
from newsreel_engine.services.repository import NewAsset, VideoRepository
from newsreel_engine.services.storage import get_object_store
from newsreel_engine.services.timeline import RenderTimeline, TimelineInput, build_timeline
from newsreel_engine.utils import AI_CALL, DEFAULT, run_async, run_step
from newsreel_engine.worker import celery_app

logger = get_logger(__name__)

DEFAULT_BLOCK_REASON = "Asset policy check returned BLOCK"


def get_renderer_provider() -> RendererProvider:
    """Get the configured renderer provider."""
    provider = getattr(settings, "renderer_provider", "stub").lower()

    if provider == "e2b":
        return E2BRemotionRenderer()
    else:
        return StubRendererProvider()


@dataclass
class RenderContext:
    video_type: VideoType
    article_date: str | None


def format_block_reasons(reasons: list[str] | None) -> str:
    return " | ".join(reasons or []) or DEFAULT_BLOCK_REASON


def apply_upload_gate(video: VideoModel) -> None:
    """Set upload status and privacy from the overall policy verdict.

    A BLOCK verdict is final for this generation: the video is never
    published and the upload error says why.
    """
    overall = normalize_stage_status(video.policy_overall_status)
    if overall == PolicyStageStatus.BLOCK:
        reasons = format_block_reasons(video.policy_block_reasons)
        video.upload_status = UploadStatus.BLOCKED.value
        video.upload_privacy = None
        video.upload_error = f"Policy BLOCK: {reasons}"
        return
    privacy = derive_publish_privacy(overall)
    video.upload_status = UploadStatus.PENDING.value
    video.upload_privacy = str(privacy) if privacy is not None else None
    video.upload_error = None


def _audio_duration_ms(audio: VideoAssetModel) -> int:
    try:
        metadata = parse_asset_metadata(audio.asset_type, audio.metadata_)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise DataIntegrityError(
            f"Slide audio asset {audio.id} (slide {audio.asset_index}) has invalid "
            f"metadata ({fields})"
        ) from e
    if not isinstance(metadata, AudioMetadata):
        raise DataIntegrityError(
            f"Slide audio asset {audio.id} (slide {audio.asset_index}) has no durationMs metadata"
        )
    return metadata.duration_ms


def collect_timeline_inputs(
    slide_assets: list[VideoAssetModel],
    audio_assets: list[VideoAssetModel],
    headlines: list[str] | None = None,
) -> list[TimelineInput]:
    """Pair slide images with their narration by asset index.

    Raises:
        DataIntegrityError: empty sets, count mismatch, duplicate indices,
            missing URLs or missing audio durations
    """
    if not slide_assets:
        raise DataIntegrityError("No slide images found for render")
    if not audio_assets:
        raise DataIntegrityError("No slide audio found for render")
    if len(slide_assets) != len(audio_assets):
        raise DataIntegrityError(
            f"Slide image count ({len(slide_assets)}) does not match "
            f"slide audio count ({len(audio_assets)})"
        )

    images: dict[int, VideoAssetModel] = {}
    for asset in slide_assets:
        if asset.asset_index in images:
            raise DataIntegrityError(
                f"Duplicate slide image index {asset.asset_index} (asset {asset.id})"
            )
        if not asset.public_url:
            raise DataIntegrityError(
                f"Slide image asset {asset.id} (slide {asset.asset_index}) has no public URL"
            )
        images[asset.asset_index] = asset

    inputs: list[TimelineInput] = []
    seen_audio: set[int] = set()
    for audio in audio_assets:
        index = audio.asset_index
        if index in seen_audio:
            raise DataIntegrityError(f"Duplicate slide audio index {index} (asset {audio.id})")
        seen_audio.add(index)
        if not audio.public_url:
            raise DataIntegrityError(f"Slide audio asset {audio.id} (slide {index}) has no public URL")
        duration = _audio_duration_ms(audio)
        image = images.get(index)
        if image is None:
            raise DataIntegrityError(f"No slide image for slide {index} (audio asset {audio.id})")
        headline = headlines[index] if headlines and index < len(headlines) else None
        inputs.append(
            TimelineInput(
                slide_index=index,
                image_url=image.public_url,  # type: ignore[arg-type]
                audio_url=audio.public_url,  # type: ignore[arg-type]
                duration_ms=duration,
                headline=headline,
            )
        )
    return inputs


def run_video_render(video_id: int) -> dict[str, Any]:
    """Render a video whose assets are generated.

    Returns:
        ``{"success": True, "video_id", "asset_id", "public_url",
        "duration_ms", "total_frames", "publish_enqueued"}`` or
        ``{"success": False, "video_id", "error"}``. A busy abort leaves the
        video row untouched.
    """
    with video_log_context(video_id, "render"):
        logger.info("video_render_started")
        try:
            return _run_video_render(video_id)
        except PipelineBusyError as e:
            logger.warning("video_render_busy", error=str(e))
            return {"success": False, "video_id": video_id, "error": str(e)}
        except Exception as e:
            logger.exception("video_render_failed", error=str(e))
            _record_render_failure(video_id, str(e))
            return {"success": False, "video_id": video_id, "error": str(e)}


def _record_render_failure(video_id: int, message: str) -> None:
    with get_session_context() as session:
        if session.get(VideoModel, video_id) is None:
            return
        VideoRepository(session).mark_render_error(video_id, message)


def _run_video_render(video_id: int) -> dict[str, Any]:
    # Step 1: validate
    def validate() -> RenderContext:
        with get_session_context() as session:
            repo = VideoRepository(session)
            video = repo.get_video(video_id)
            if video.asset_status != AssetStatus.GENERATED.value:
                raise PreconditionError(
                    f"Video {video_id} assets are not generated (status: {video.asset_status})"
                )
            if video.render_status == RenderStatus.RENDERING.value:
                raise PipelineBusyError(f"Video {video_id} is already rendering")
            articles = repo.get_articles(video)
            dated = [a.published_at for a in articles if a.published_at is not None]
            return RenderContext(
                video_type=VideoType(video.video_type),
                article_date=dated[0].date().isoformat() if dated else None,
            )

    context = run_step("validate", DEFAULT, validate)

    # Step 2: claim
    def claim() -> None:
        with get_session_context() as session:
            if not VideoRepository(session).claim_render(video_id):
                raise PipelineBusyError(f"Video {video_id} is already rendering")

    run_step("claim", DEFAULT, claim)

    # Step 3: load assets
    def load_assets() -> list[TimelineInput]:
        with get_session_context() as session:
            repo = VideoRepository(session)
            video = repo.get_video(video_id)
            headlines = [s.headline for s in repo.get_script(video).slides] if video.script else []
            return collect_timeline_inputs(
                repo.list_assets(video_id, AssetType.SLIDE_IMAGE),
                repo.list_assets(video_id, AssetType.SLIDE_AUDIO),
                headlines,
            )

    inputs = run_step("load-assets", DEFAULT, load_assets)

    # Step 4: build timeline
    timeline: RenderTimeline = run_step("build-timeline", DEFAULT, lambda: build_timeline(inputs))
    logger.info(
        "render_timeline_built",
        slide_count=len(timeline.slides),
        total_frames=timeline.total_frames,
        duration_ms=timeline.duration_ms,
    )

    # Step 5: render
    renderer = get_renderer_provider()
    job = RenderJob(
        video_id=video_id,
        video_type=context.video_type,
        timeline=timeline,
        article_date=context.article_date,
    )

    def render() -> RenderResult:
        result = run_async(renderer.render(job))
        if not result.success or not result.video_data:
            raise RenderError(result.error_message or "Renderer returned no video data")
        return result

    result = run_step("render", AI_CALL, render)

    # Step 6: persist video
    store = get_object_store()

    def persist_video() -> tuple[int, str]:
        mime_type = verify_video_bytes(result.video_data, result.format)
        stored = store.put(result.video_data, mime_type)  # type: ignore[arg-type]
        width, height = job.dimensions
        metadata = RenderMetadata(
            width=result.width or width,
            height=result.height or height,
            duration_ms=result.duration_ms or timeline.duration_ms,
            fps=result.fps or timeline.fps,
            video_codec=result.video_codec or "h264",
            audio_codec=result.audio_codec or "aac",
            format=result.format,
            total_frames=timeline.total_frames,
        )
        with get_session_context() as session:
            rows = VideoRepository(session).replace_assets(
                video_id,
                [AssetType.RENDERED_VIDEO],
                [NewAsset(AssetType.RENDERED_VIDEO, 0, stored, metadata)],
            )
            return rows[0].id, stored.public_url

    asset_id, public_url = run_step("persist-video", DEFAULT, persist_video)

    # Step 7: complete
    def complete() -> bool:
        with get_session_context() as session:
            video = VideoRepository(session).get_video(video_id)
            video.render_status = RenderStatus.RENDERED.value
            video.render_completed_at = datetime.now(UTC)
            video.render_error = None
            apply_upload_gate(video)
            return video.upload_status == UploadStatus.BLOCKED.value

    blocked = run_step("complete", DEFAULT, complete)

    # Step 8: enqueue publish
    publish_enqueued = False
    if blocked:
        logger.warning("publish_skipped_policy_block")
    elif settings.auto_enqueue_publish:
        publish_video_task.delay(video_id)
        publish_enqueued = True
        logger.info("publish_enqueued")

    logger.info(
        "video_render_completed",
        asset_id=asset_id,
        duration_ms=timeline.duration_ms,
        total_frames=timeline.total_frames,
    )
    return {
        "success": True,
        "video_id": video_id,
        "asset_id": asset_id,
        "public_url": public_url,
        "duration_ms": timeline.duration_ms,
        "total_frames": timeline.total_frames,
        "publish_enqueued": publish_enqueued,
    }


@celery_app.task(bind=True, name="render.render_video")
def render_video_task(self: Any, video_id: int) -> dict[str, Any]:
    """Render the final video for a video whose assets are generated.

    Args:
        video_id: ID of the video

    Returns:
        Dict with the rendered asset or the failure message
    """
    logger.info("render_video_task_started", task_id=self.request.id, video_id=video_id)
    return run_video_render(video_id)
