"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ArticleModel(Base):
    """Source news article (written by the ingestion stage, read-only here)."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    image_urls: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class VideoArticleModel(Base):
    """Ordered link between a video and its source articles."""

    __tablename__ = "video_articles"

    video_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True
    )
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    article: Mapped["ArticleModel"] = relationship("ArticleModel")


class VideoModel(Base):
    """Video job ORM model; the single source of truth for pipeline state."""

    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    video_type: Mapped[str] = mapped_column(String(20), nullable=False, server_default="short")
    image_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tts_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tts_voice: Mapped[str | None] = mapped_column(String(50), nullable=True)
    script: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    # Stage statuses
    script_status: Mapped[str] = mapped_column(String(20), server_default="pending", index=True)
    asset_status: Mapped[str] = mapped_column(String(20), server_default="pending", index=True)
    asset_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    render_status: Mapped[str] = mapped_column(String(20), server_default="pending", index=True)
    render_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    render_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    render_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    upload_status: Mapped[str] = mapped_column(String(20), server_default="pending", index=True)
    upload_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    upload_privacy: Mapped[str | None] = mapped_column(String(20), nullable=True)
    upload_video_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    upload_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    upload_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Policy
    script_policy_status: Mapped[str] = mapped_column(String(20), server_default="PENDING")
    asset_policy_status: Mapped[str] = mapped_column(String(20), server_default="PENDING")
    policy_overall_status: Mapped[str] = mapped_column(
        String(20), server_default="PENDING", index=True
    )
    policy_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    policy_block_reasons: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    policy_checked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    policy_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Always SUM(cost_logs.cost)
    total_cost: Mapped[float] = mapped_column(Float, server_default="0", default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    # Relationships
    article_links: Mapped[list["VideoArticleModel"]] = relationship(
        "VideoArticleModel",
        order_by="VideoArticleModel.position",
        cascade="all, delete-orphan",
    )
    assets: Mapped[list["VideoAssetModel"]] = relationship(
        "VideoAssetModel", back_populates="video", cascade="all, delete-orphan"
    )
    cost_logs: Mapped[list["CostLogModel"]] = relationship(
        "CostLogModel", back_populates="video", cascade="all, delete-orphan"
    )
    policy_runs: Mapped[list["PolicyRunModel"]] = relationship(
        "PolicyRunModel", back_populates="video", cascade="all, delete-orphan"
    )


class VideoAssetModel(Base):
    """One physical artifact generated for a video."""

    __tablename__ = "video_assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    asset_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    asset_index: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    storage_key: Mapped[str] = mapped_column(String(255), nullable=False)
    public_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("video_id", "asset_type", "asset_index", name="uq_video_asset_index"),
    )

    video: Mapped["VideoModel"] = relationship("VideoModel", back_populates="assets")


class CostLogModel(Base):
    """Append-only record of a billable generation call."""

    __tablename__ = "cost_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    log_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    model_id: Mapped[str] = mapped_column(String(100), nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, server_default="0", default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, server_default="0", default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    video: Mapped["VideoModel"] = relationship("VideoModel", back_populates="cost_logs")


class PolicyRunModel(Base):
    """One policy check of one stage."""

    __tablename__ = "policy_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    stage: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    model_id: Mapped[str] = mapped_column(String(100), nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, server_default="0", default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, server_default="0", default=0)
    cost: Mapped[float] = mapped_column(Float, server_default="0", default=0.0)
    # Object store keys of the raw prompt and model response
    prompt_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    response_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    video: Mapped["VideoModel"] = relationship("VideoModel", back_populates="policy_runs")
    findings: Mapped[list["PolicyFindingModel"]] = relationship(
        "PolicyFindingModel", back_populates="policy_run", cascade="all, delete-orphan"
    )


class PolicyFindingModel(Base):
    """Verdict of one rule within a policy run."""

    __tablename__ = "policy_findings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    policy_run_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("policy_runs.id", ondelete="CASCADE"), index=True
    )
    check_code: Mapped[str] = mapped_column(String(100), nullable=False)
    check_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)

    policy_run: Mapped["PolicyRunModel"] = relationship(
        "PolicyRunModel", back_populates="findings"
    )
