"""Persist a policy review and roll it up onto the video."""

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from newsreel_engine.db.models import PolicyFindingModel, PolicyRunModel, VideoModel
from newsreel_engine.domain.enums import PolicyStage, PolicyStageStatus
from newsreel_engine.logging import get_logger
from newsreel_engine.services.policy import (
    derive_overall_status,
    extract_block_reasons,
    merge_block_reasons,
    normalize_stage_status,
)
from newsreel_engine.services.policy_checker import STAGE_LABELS, PolicyCheckResult
from newsreel_engine.services.repository import VideoRepository
from newsreel_engine.services.storage import ObjectStore

logger = get_logger(__name__)


@dataclass
class PolicyPersistOutcome:
    """What persisting one review changed."""

    policy_run_id: int
    stage_status: PolicyStageStatus
    overall_status: PolicyStageStatus
    cost: float
    block_reasons: list[str]


def persist_policy_check(
    session: Session,
    video: VideoModel,
    result: PolicyCheckResult,
    store: ObjectStore,
) -> PolicyPersistOutcome:
    """Record a review, its findings and its cost, then update the video's policy columns.

    Block reasons are only kept while the overall verdict is BLOCK. When a
    BLOCK carries no BLOCK finding of its own, the review summary stands in.
    The raw prompt and model response go to the object store for auditing.
    """
    repo = VideoRepository(session)
    entry = result.cost_entry()
    prompt = store.put(result.prompt_text.encode("utf-8"), "text/plain")
    response = store.put(result.response_text.encode("utf-8"), "text/plain")

    run = PolicyRunModel(
        video_id=video.id,
        stage=str(result.stage),
        status=str(result.stage_status),
        summary=result.summary,
        model_id=result.model_id,
        input_tokens=result.input_tokens,
        output_tokens=result.output_tokens,
        cost=entry.cost,
        prompt_key=prompt.key,
        response_key=response.key,
        findings=[
            PolicyFindingModel(
                check_code=f.check_code,
                check_label=f.check_label,
                status=str(f.status),
                reason=f.reason,
                evidence=list(f.evidence),
            )
            for f in result.findings
        ],
    )
    session.add(run)
    repo.add_cost_log(video.id, entry)

    if result.stage == PolicyStage.SCRIPT_LIGHT:
        video.script_policy_status = str(result.stage_status)
    else:
        video.asset_policy_status = str(result.stage_status)

    overall = derive_overall_status(
        normalize_stage_status(video.script_policy_status),
        normalize_stage_status(video.asset_policy_status),
    )

    block_reasons: list[str] = []
    if overall == PolicyStageStatus.BLOCK:
        block_reasons = merge_block_reasons(
            video.policy_block_reasons, extract_block_reasons(result.findings)
        )
        if not block_reasons and result.summary.strip():
            block_reasons = [result.summary.strip()]

    video.policy_overall_status = str(overall)
    video.policy_summary = f"{STAGE_LABELS[result.stage]}: {result.summary}"
    video.policy_block_reasons = block_reasons
    video.policy_checked_at = datetime.now(UTC)
    video.policy_error = None
    session.flush()
    repo.recompute_total_cost(video)

    logger.info(
        "policy_check_persisted",
        video_id=video.id,
        stage=str(result.stage),
        stage_status=str(result.stage_status),
        overall_status=str(overall),
        cost=entry.cost,
        block_reason_count=len(block_reasons),
    )
    return PolicyPersistOutcome(
        policy_run_id=run.id,
        stage_status=result.stage_status,
        overall_status=overall,
        cost=entry.cost,
        block_reasons=block_reasons,
    )
