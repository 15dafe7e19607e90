"""Domain models and business logic."""

from newsreel_engine.domain.enums import (
    AssetStatus,
    AssetType,
    CostLogType,
    PolicyFindingStatus,
    PolicyStage,
    PolicyStageStatus,
    PublishPrivacy,
    RenderStatus,
    ScriptStatus,
    UploadStatus,
    VideoType,
)
from newsreel_engine.domain.models import ArticleContext, Slide, VideoScript

__all__ = [
    "ArticleContext",
    "AssetStatus",
    "AssetType",
    "CostLogType",
    "PolicyFindingStatus",
    "PolicyStage",
    "PolicyStageStatus",
    "PublishPrivacy",
    "RenderStatus",
    "ScriptStatus",
    "Slide",
    "UploadStatus",
    "VideoScript",
    "VideoType",
]
