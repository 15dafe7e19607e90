"""Video publish pipeline.

Pipeline steps:
1. validate - rendered, not blocked, privacy from the overall verdict
2. claim - upload_status = uploading
3. load-video - rendered_video bytes from the object store
4. publish - upload through the configured publisher
5. complete - upload_status = uploaded with the platform id and URL

A BLOCK verdict stops the pipeline before anything is written: the
publisher is never called and the video row keeps its blocked state.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from newsreel_engine.adapters.publisher.base import (
    PublisherAdapter,
    PublishRequest,
    PublishResponse,
)
from newsreel_engine.adapters.publisher.stub import StubPublisherAdapter
from newsreel_engine.adapters.publisher.youtube import YouTubePublisher
from newsreel_engine.config import settings
from newsreel_engine.db.models import VideoModel
from newsreel_engine.db.session import get_session_context
from newsreel_engine.domain.enums import AssetType, PublishPrivacy, RenderStatus, UploadStatus
from newsreel_engine.errors import (
    DataIntegrityError,
    PipelineBusyError,
    PreconditionError,
    PublishError,
)
from newsreel_engine.logging import get_logger, video_log_context
from newsreel_engine.services.policy import derive_publish_privacy
from newsreel_engine.services.repository import VideoRepository
from newsreel_engine.services.storage import get_object_store
from newsreel_engine.utils import AI_CALL, DEFAULT, run_async, run_step
from newsreel_engine.worker import celery_app

logger = get_logger(__name__)


def get_publisher() -> PublisherAdapter:
    """Get the configured publisher."""
    provider = getattr(settings, "publisher_provider", "stub").lower()

    if provider == "youtube":
        return YouTubePublisher()
    else:
        return StubPublisherAdapter()


@dataclass
class PublishContext:
    title: str
    description: str | None
    privacy: PublishPrivacy | None


def run_video_publish(video_id: int) -> dict[str, Any]:
    """Publish a rendered video with the privacy its policy verdict allows.

    Returns:
        ``{"success": True, "video_id", "platform", "platform_video_id",
        "url", "privacy"}`` or ``{"success": False, "video_id", "error"}``.
        Blocked and busy aborts also carry ``"blocked"``/``"busy"`` and
        leave the video row untouched.
    """
    with video_log_context(video_id, "publish"):
        logger.info("video_publish_started")
        try:
            return _run_video_publish(video_id)
        except PipelineBusyError as e:
            logger.warning("video_publish_busy", error=str(e))
            return {"success": False, "video_id": video_id, "busy": True, "error": str(e)}
        except Exception as e:
            logger.exception("video_publish_failed", error=str(e))
            _record_publish_failure(video_id, str(e))
            return {"success": False, "video_id": video_id, "error": str(e)}


def _record_publish_failure(video_id: int, message: str) -> None:
    with get_session_context() as session:
        if session.get(VideoModel, video_id) is None:
            return
        VideoRepository(session).mark_upload_error(video_id, message)


def _run_video_publish(video_id: int) -> dict[str, Any]:
    # Step 1: validate
    def validate() -> PublishContext:
        with get_session_context() as session:
            repo = VideoRepository(session)
            video = repo.get_video(video_id)
            if video.render_status != RenderStatus.RENDERED.value:
                raise PreconditionError(
                    f"Video {video_id} is not rendered (status: {video.render_status})"
                )
            if video.upload_status in (UploadStatus.UPLOADING.value, UploadStatus.UPLOADED.value):
                raise PipelineBusyError(f"Video {video_id} is already {video.upload_status}")
            script = repo.get_script(video) if video.script else None
            privacy = None
            if video.upload_status != UploadStatus.BLOCKED.value:
                privacy = derive_publish_privacy(video.policy_overall_status)
            return PublishContext(
                title=video.title or (script.title if script else f"Video {video_id}"),
                description=script.description if script else None,
                privacy=privacy,
            )

    context = run_step("validate", DEFAULT, validate)
    if context.privacy is None:
        logger.warning("video_publish_blocked")
        return {
            "success": False,
            "video_id": video_id,
            "blocked": True,
            "error": f"Video {video_id} is policy blocked and will not be published",
        }

    # Step 2: claim
    def claim() -> None:
        with get_session_context() as session:
            if not VideoRepository(session).claim_upload(video_id):
                raise PipelineBusyError(f"Video {video_id} cannot be claimed for upload")

    run_step("claim", DEFAULT, claim)

    # Step 3: load video
    store = get_object_store()

    def load_video() -> tuple[bytes, str]:
        with get_session_context() as session:
            rendered = VideoRepository(session).list_assets(video_id, AssetType.RENDERED_VIDEO)
            if not rendered:
                raise DataIntegrityError(f"Video {video_id} has no rendered_video asset")
            key, mime_type = rendered[0].storage_key, rendered[0].mime_type
        try:
            return store.get(key), mime_type
        except FileNotFoundError as e:
            raise DataIntegrityError(
                f"Rendered video object {key} is missing from the store"
            ) from e

    video_data, mime_type = run_step("load-video", DEFAULT, load_video)

    # Step 4: publish
    publisher = get_publisher()
    request = PublishRequest(
        video_data=video_data,
        title=context.title,
        description=context.description,
        privacy=context.privacy,
        mime_type=mime_type,
    )

    def publish() -> PublishResponse:
        response = run_async(publisher.publish(request))
        if not response.success or not response.platform_video_id:
            raise PublishError(response.error_message or "Publisher returned no video id")
        return response

    response = run_step("publish", AI_CALL, publish)

    # Step 5: complete
    def complete() -> None:
        with get_session_context() as session:
            video = VideoRepository(session).get_video(video_id)
            video.upload_status = UploadStatus.UPLOADED.value
            video.upload_privacy = str(context.privacy)
            video.upload_video_id = response.platform_video_id
            video.upload_url = response.url
            video.upload_completed_at = datetime.now(UTC)
            video.upload_error = None

    run_step("complete", DEFAULT, complete)

    logger.info(
        "video_publish_completed",
        platform=response.platform,
        platform_video_id=response.platform_video_id,
        privacy=str(context.privacy),
    )
    return {
        "success": True,
        "video_id": video_id,
        "platform": response.platform,
        "platform_video_id": response.platform_video_id,
        "url": response.url,
        "privacy": str(context.privacy),
    }


@celery_app.task(bind=True, name="publish.publish_video")
def publish_video_task(self: Any, video_id: int) -> dict[str, Any]:
    """Publish a rendered video.

    Args:
        video_id: ID of the rendered video

    Returns:
        Dict with the platform video id or the failure message
    """
    logger.info("publish_video_task_started", task_id=self.request.id, video_id=video_id)
    return run_video_publish(video_id)
