"""Read/write contract the pipelines use against the relational store.

All methods work inside the caller's session; the caller's session scope
decides when the changes commit. Multi-row replacements (delete then insert)
therefore land together with whatever else the step writes.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from newsreel_engine.db.models import (
    CostLogModel,
    VideoAssetModel,
    VideoModel,
)
from newsreel_engine.domain.enums import AssetStatus, AssetType, RenderStatus, UploadStatus
from newsreel_engine.domain.metadata import AssetMetadata, check_metadata_type
from newsreel_engine.domain.models import ArticleContext, VideoScript
from newsreel_engine.errors import PreconditionError
from newsreel_engine.logging import get_logger
from newsreel_engine.services.costs import CostEntry
from newsreel_engine.services.storage import StoredObject

logger = get_logger(__name__)


@dataclass
class NewAsset:
    """An uploaded object waiting for its database row."""

    asset_type: AssetType
    asset_index: int
    stored: StoredObject
    metadata: AssetMetadata | None = None


class VideoRepository:
    """Persistence/status façade for one session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- reads -------------------------------------------------------------

    def get_video(self, video_id: int) -> VideoModel:
        video = self.session.get(VideoModel, video_id)
        if video is None:
            raise PreconditionError(f"Video not found: {video_id}")
        return video

    def get_script(self, video: VideoModel) -> VideoScript:
        if not video.script:
            raise PreconditionError(f"Video {video.id} has no script")
        script = VideoScript.from_dict(video.script)
        if not script.slides:
            raise PreconditionError(f"Video {video.id} script has no slides")
        return script

    def get_articles(self, video: VideoModel) -> list[ArticleContext]:
        """Source articles in selection order."""
        return [
            ArticleContext(
                id=link.article.id,
                title=link.article.title,
                content=link.article.content,
                source_url=link.article.source_url,
                image_urls=list(link.article.image_urls or []),
                published_at=link.article.published_at,
            )
            for link in video.article_links
        ]

    def list_assets(
        self,
        video_id: int,
        asset_type: AssetType | str,
    ) -> list[VideoAssetModel]:
        return list(
            self.session.execute(
                select(VideoAssetModel)
                .where(
                    VideoAssetModel.video_id == video_id,
                    VideoAssetModel.asset_type == str(asset_type),
                )
                .order_by(VideoAssetModel.asset_index)
            )
            .scalars()
            .all()
        )

    def asset_indices(self, video_id: int, asset_type: AssetType | str) -> set[int]:
        return set(
            self.session.execute(
                select(VideoAssetModel.asset_index).where(
                    VideoAssetModel.video_id == video_id,
                    VideoAssetModel.asset_type == str(asset_type),
                )
            )
            .scalars()
            .all()
        )

    # -- assets ------------------------------------------------------------

    def delete_assets(self, video_id: int, asset_types: Iterable[AssetType | str]) -> int:
        """Delete every asset row of the given types for a video."""
        types = [str(t) for t in asset_types]
        result = self.session.execute(
            delete(VideoAssetModel)
            .where(
                VideoAssetModel.video_id == video_id,
                VideoAssetModel.asset_type.in_(types),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        deleted = result.rowcount or 0
        if deleted:
            logger.info("assets_deleted", video_id=video_id, asset_types=types, count=deleted)
        return deleted

    def add_asset(self, video_id: int, asset: NewAsset) -> VideoAssetModel:
        if asset.metadata is not None:
            check_metadata_type(asset.asset_type, asset.metadata)
        row = VideoAssetModel(
            video_id=video_id,
            asset_type=str(asset.asset_type),
            asset_index=asset.asset_index,
            storage_key=asset.stored.key,
            public_url=asset.stored.public_url,
            mime_type=asset.stored.mime_type,
            file_size=asset.stored.size,
            metadata_=asset.metadata.to_json() if asset.metadata is not None else None,
        )
        self.session.add(row)
        return row

    def replace_assets(
        self,
        video_id: int,
        asset_types: Sequence[AssetType],
        assets: Sequence[NewAsset],
    ) -> list[VideoAssetModel]:
        """Full-replace: drop every prior row of the types, then insert the new set.

        Raises:
            ValueError: an asset's type is not among asset_types, or two assets
                share a (type, index) pair
        """
        allowed = set(asset_types)
        seen: set[tuple[AssetType, int]] = set()
        for asset in assets:
            if asset.asset_type not in allowed:
                raise ValueError(f"{asset.asset_type} is not being replaced")
            key = (asset.asset_type, asset.asset_index)
            if key in seen:
                raise ValueError(f"Duplicate asset index {asset.asset_index} for {asset.asset_type}")
            seen.add(key)

        self.delete_assets(video_id, asset_types)
        rows = [self.add_asset(video_id, asset) for asset in assets]
        self.session.flush()
        logger.info(
            "assets_replaced",
            video_id=video_id,
            asset_types=[str(t) for t in asset_types],
            count=len(rows),
        )
        return rows

    # -- costs -------------------------------------------------------------

    def add_cost_log(self, video_id: int, entry: CostEntry) -> CostLogModel:
        row = CostLogModel(
            video_id=video_id,
            log_type=str(entry.log_type),
            model_id=entry.model_id,
            input_tokens=entry.input_tokens,
            output_tokens=entry.output_tokens,
            cost=entry.cost,
        )
        self.session.add(row)
        return row

    def recompute_total_cost(self, video: VideoModel) -> float:
        """Set total_cost to the sum of the video's cost log."""
        self.session.flush()
        total = self.session.execute(
            select(func.coalesce(func.sum(CostLogModel.cost), 0.0)).where(
                CostLogModel.video_id == video.id
            )
        ).scalar_one()
        video.total_cost = float(total)
        return video.total_cost

    # -- status transitions ------------------------------------------------

    def claim_asset_generation(self, video_id: int, voice: str) -> bool:
        """Move a video into ``generating`` unless another run already holds it."""
        result = self.session.execute(
            update(VideoModel)
            .where(
                VideoModel.id == video_id,
                VideoModel.asset_status != AssetStatus.GENERATING.value,
            )
            .values(
                asset_status=AssetStatus.GENERATING.value,
                asset_error=None,
                tts_voice=func.coalesce(VideoModel.tts_voice, voice),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        return (result.rowcount or 0) == 1

    def claim_render(self, video_id: int) -> bool:
        """Move a video into ``rendering`` unless another run already holds it."""
        result = self.session.execute(
            update(VideoModel)
            .where(
                VideoModel.id == video_id,
                VideoModel.render_status != RenderStatus.RENDERING.value,
            )
            .values(
                render_status=RenderStatus.RENDERING.value,
                render_started_at=datetime.now(UTC),
                render_completed_at=None,
                render_error=None,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        return (result.rowcount or 0) == 1

    def mark_asset_error(self, video_id: int, message: str) -> None:
        video = self.get_video(video_id)
        video.asset_status = AssetStatus.ERROR.value
        video.asset_error = message

    def mark_render_error(self, video_id: int, message: str) -> None:
        video = self.get_video(video_id)
        video.render_status = RenderStatus.ERROR.value
        video.render_error = message

    def mark_policy_error(self, video_id: int, message: str) -> None:
        """Record a review that could not complete; the stage verdicts stay as they were."""
        video = self.get_video(video_id)
        video.policy_error = message

    def claim_upload(self, video_id: int) -> bool:
        """Move a video into ``uploading`` from ``pending`` or ``error`` only.

        Blocked, uploading and uploaded videos are never claimed.
        """
        result = self.session.execute(
            update(VideoModel)
            .where(
                VideoModel.id == video_id,
                VideoModel.upload_status.in_(
                    [UploadStatus.PENDING.value, UploadStatus.ERROR.value]
                ),
            )
            .values(upload_status=UploadStatus.UPLOADING.value, upload_error=None)
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        return (result.rowcount or 0) == 1

    def mark_upload_error(self, video_id: int, message: str) -> None:
        """Record a failed publish. A policy block is never overwritten."""
        video = self.get_video(video_id)
        if video.upload_status == UploadStatus.BLOCKED.value:
            return
        video.upload_status = UploadStatus.ERROR.value
        video.upload_error = message
