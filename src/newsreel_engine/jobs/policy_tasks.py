"""Content policy Celery tasks.

The asset-strong check runs inside the asset pipeline; the script-light check
is triggered here once a script has been generated.
"""

from typing import Any

from newsreel_engine.adapters.llm.base import LLMProvider
from newsreel_engine.adapters.llm.gemini import GeminiProvider
from newsreel_engine.adapters.llm.stub import StubLLMProvider
from newsreel_engine.config import settings
from newsreel_engine.db.models import VideoModel
from newsreel_engine.db.session import get_session_context
from newsreel_engine.domain.enums import ScriptStatus
from newsreel_engine.errors import PreconditionError
from newsreel_engine.logging import get_logger, video_log_context
from newsreel_engine.services.policy_checker import PolicyChecker
from newsreel_engine.services.policy_persistence import persist_policy_check
from newsreel_engine.services.repository import VideoRepository
from newsreel_engine.services.storage import get_object_store
from newsreel_engine.utils import AI_CALL, DEFAULT, run_async, run_step
from newsreel_engine.worker import celery_app

logger = get_logger(__name__)


def get_llm_provider(model: str) -> LLMProvider:
    """Get the configured LLM provider for a review model."""
    provider = getattr(settings, "llm_provider", "stub").lower()

    if provider == "gemini":
        return GeminiProvider(model=model)
    else:
        return StubLLMProvider(model=model)


def get_policy_checker() -> PolicyChecker:
    """Policy checker wired to the configured review models."""
    return PolicyChecker(
        script_llm=get_llm_provider(settings.policy_script_model),
        asset_llm=get_llm_provider(settings.policy_asset_model),
        max_images=settings.policy_max_images,
    )


def run_script_policy_check(video_id: int) -> dict[str, Any]:
    """Review a generated script and record the verdict on the video.

    A review that cannot complete leaves the stage verdicts untouched and
    records the failure in ``policy_error``.
    """
    with video_log_context(video_id, "script-policy"):
        try:
            return _run_script_policy_check(video_id)
        except Exception as e:
            logger.exception("script_policy_check_failed", error=str(e))
            _record_policy_failure(video_id, f"Script policy check failed: {e}")
            return {"success": False, "video_id": video_id, "error": str(e)}


def _record_policy_failure(video_id: int, message: str) -> None:
    with get_session_context() as session:
        if session.get(VideoModel, video_id) is None:
            return
        VideoRepository(session).mark_policy_error(video_id, message)


def _run_script_policy_check(video_id: int) -> dict[str, Any]:
    store = get_object_store()

    def load() -> tuple[Any, Any]:
        with get_session_context() as session:
            repo = VideoRepository(session)
            video = repo.get_video(video_id)
            if video.script_status != ScriptStatus.GENERATED.value:
                raise PreconditionError(
                    f"Video {video_id} script is not generated (status: {video.script_status})"
                )
            return repo.get_script(video), repo.get_articles(video)

    script, articles = run_step("load-script", DEFAULT, load)

    checker = get_policy_checker()
    result = run_step(
        "script-policy-check",
        AI_CALL,
        lambda: run_async(checker.check_script(video_id, script, articles)),
    )

    def persist() -> dict[str, Any]:
        with get_session_context() as session:
            video = VideoRepository(session).get_video(video_id)
            outcome = persist_policy_check(session, video, result, store)
            return {
                "success": True,
                "video_id": video_id,
                "policy_run_id": outcome.policy_run_id,
                "stage_status": str(outcome.stage_status),
                "overall_status": str(outcome.overall_status),
                "cost": outcome.cost,
            }

    return run_step("persist-script-policy", DEFAULT, persist)


@celery_app.task(bind=True, name="policy.check_script")
def check_script_policy_task(self: Any, video_id: int) -> dict[str, Any]:
    """Run the script-light policy check for a video.

    Args:
        video_id: ID of the video whose script was just generated

    Returns:
        Dict with the stage and overall policy status
    """
    logger.info("check_script_policy_started", task_id=self.request.id, video_id=video_id)
    return run_script_policy_check(video_id)
