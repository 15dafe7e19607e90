"""Video pipeline endpoints.

Reads the persisted status columns and enqueues pipeline tasks. The
pipelines themselves decide whether a video may run; these endpoints only
reject requests that could never succeed.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from newsreel_engine.api.deps import RepositoryDep, SessionDep
from newsreel_engine.db.models import VideoModel
from newsreel_engine.domain.enums import (
    AssetStatus,
    AssetType,
    RenderStatus,
    ScriptStatus,
    UploadStatus,
)
from newsreel_engine.jobs.asset_pipeline import generate_assets_task
from newsreel_engine.jobs.policy_tasks import check_script_policy_task
from newsreel_engine.jobs.publish_pipeline import publish_video_task
from newsreel_engine.jobs.render_pipeline import render_video_task
from newsreel_engine.logging import get_logger

router = APIRouter(prefix="/videos", tags=["Videos"])
logger = get_logger(__name__)


class JobResponse(BaseModel):
    """Response when a pipeline task is enqueued."""

    task_id: str
    video_id: int
    status: str
    message: str


class PolicyStatusResponse(BaseModel):
    script_status: str
    asset_status: str
    overall_status: str
    summary: str | None = None
    block_reasons: list[str] = []
    checked_at: datetime | None = None
    error: str | None = None


class VideoStatusResponse(BaseModel):
    """Pipeline state of one video."""

    id: int
    title: str | None
    video_type: str
    script_status: str
    asset_status: str
    asset_error: str | None
    render_status: str
    render_error: str | None
    render_started_at: datetime | None
    render_completed_at: datetime | None
    upload_status: str
    upload_error: str | None
    upload_privacy: str | None
    upload_video_id: str | None = None
    upload_url: str | None = None
    upload_completed_at: datetime | None = None
    total_cost: float
    policy: PolicyStatusResponse


class AssetResponse(BaseModel):
    id: int
    asset_type: str
    asset_index: int
    public_url: str | None
    mime_type: str
    file_size: int | None
    metadata: dict[str, Any] | None


def _get_video_or_404(session: SessionDep, video_id: int) -> VideoModel:
    video = session.get(VideoModel, video_id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


@router.get(
    "/{video_id}",
    response_model=VideoStatusResponse,
    summary="Video status",
    description="Status, error and policy columns of a video.",
)
async def get_video_status(video_id: int, session: SessionDep) -> VideoStatusResponse:
    video = _get_video_or_404(session, video_id)
    return VideoStatusResponse(
        id=video.id,
        title=video.title,
        video_type=video.video_type,
        script_status=video.script_status,
        asset_status=video.asset_status,
        asset_error=video.asset_error,
        render_status=video.render_status,
        render_error=video.render_error,
        render_started_at=video.render_started_at,
        render_completed_at=video.render_completed_at,
        upload_status=video.upload_status,
        upload_error=video.upload_error,
        upload_privacy=video.upload_privacy,
        upload_video_id=video.upload_video_id,
        upload_url=video.upload_url,
        upload_completed_at=video.upload_completed_at,
        total_cost=video.total_cost or 0.0,
        policy=PolicyStatusResponse(
            script_status=video.script_policy_status,
            asset_status=video.asset_policy_status,
            overall_status=video.policy_overall_status,
            summary=video.policy_summary,
            block_reasons=list(video.policy_block_reasons or []),
            checked_at=video.policy_checked_at,
            error=video.policy_error,
        ),
    )


@router.get(
    "/{video_id}/assets",
    response_model=list[AssetResponse],
    summary="List assets",
    description="Generated assets of a video, optionally filtered by type.",
)
async def list_video_assets(
    video_id: int,
    repo: RepositoryDep,
    asset_type: AssetType | None = None,
) -> list[AssetResponse]:
    _get_video_or_404(repo.session, video_id)
    types = [asset_type] if asset_type else list(AssetType)
    return [
        AssetResponse(
            id=row.id,
            asset_type=row.asset_type,
            asset_index=row.asset_index,
            public_url=row.public_url,
            mime_type=row.mime_type,
            file_size=row.file_size,
            metadata=row.metadata_,
        )
        for t in types
        for row in repo.list_assets(video_id, t)
    ]


@router.post(
    "/{video_id}/assets",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate assets",
    description="Enqueue the asset generation pipeline for a video.",
)
async def trigger_asset_generation(video_id: int, session: SessionDep) -> JobResponse:
    video = _get_video_or_404(session, video_id)
    if video.script_status != ScriptStatus.GENERATED.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Script is not generated (status: {video.script_status})",
        )
    if video.asset_status == AssetStatus.GENERATING.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Assets are already generating"
        )

    logger.info("asset_generation_triggered", video_id=video_id)
    task = generate_assets_task.delay(video_id)
    return JobResponse(
        task_id=task.id,
        video_id=video_id,
        status="queued",
        message="Asset generation enqueued",
    )


@router.post(
    "/{video_id}/render",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Render video",
    description="Enqueue the render pipeline for a video with generated assets.",
)
async def trigger_render(video_id: int, session: SessionDep) -> JobResponse:
    video = _get_video_or_404(session, video_id)
    if video.asset_status != AssetStatus.GENERATED.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Assets are not generated (status: {video.asset_status})",
        )
    if video.render_status == RenderStatus.RENDERING.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already rendering")

    logger.info("render_triggered", video_id=video_id)
    task = render_video_task.delay(video_id)
    return JobResponse(
        task_id=task.id,
        video_id=video_id,
        status="queued",
        message="Render enqueued",
    )


@router.post(
    "/{video_id}/policy/script",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Check script policy",
    description="Enqueue the script-light policy check for a video.",
)
async def trigger_script_policy_check(video_id: int, session: SessionDep) -> JobResponse:
    video = _get_video_or_404(session, video_id)
    if video.script_status != ScriptStatus.GENERATED.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Script is not generated (status: {video.script_status})",
        )

    logger.info("script_policy_check_triggered", video_id=video_id)
    task = check_script_policy_task.delay(video_id)
    return JobResponse(
        task_id=task.id,
        video_id=video_id,
        status="queued",
        message="Script policy check enqueued",
    )


@router.post(
    "/{video_id}/publish",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Publish video",
    description="Enqueue publishing of a rendered video that is not policy blocked.",
)
async def trigger_publish(video_id: int, session: SessionDep) -> JobResponse:
    video = _get_video_or_404(session, video_id)
    if video.render_status != RenderStatus.RENDERED.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Video is not rendered (status: {video.render_status})",
        )
    if video.upload_status == UploadStatus.BLOCKED.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=video.upload_error or "Video is policy blocked",
        )
    if video.upload_status in (UploadStatus.UPLOADING.value, UploadStatus.UPLOADED.value):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Video is already {video.upload_status}",
        )

    logger.info("publish_triggered", video_id=video_id)
    task = publish_video_task.delay(video_id)
    return JobResponse(
        task_id=task.id,
        video_id=video_id,
        status="queued",
        message="Publish enqueued",
    )
