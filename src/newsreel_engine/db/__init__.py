"""Database layer."""

from newsreel_engine.db.models import (
    ArticleModel,
    Base,
    CostLogModel,
    PolicyFindingModel,
    PolicyRunModel,
    VideoArticleModel,
    VideoAssetModel,
    VideoModel,
)
from newsreel_engine.db.session import get_session, get_session_context, init_db

__all__ = [
    "Base",
    "get_session",
    "get_session_context",
    "init_db",
    # Models
    "ArticleModel",
    "CostLogModel",
    "PolicyFindingModel",
    "PolicyRunModel",
    "VideoArticleModel",
    "VideoAssetModel",
    "VideoModel",
]
