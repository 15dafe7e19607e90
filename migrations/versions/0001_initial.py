"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Articles table (written by the ingestion stage)
    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("source_url", sa.String(2048), nullable=True),
        sa.Column("image_urls", postgresql.JSONB(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    # Videos table
    op.create_table(
        "videos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("video_type", sa.String(20), nullable=False, server_default="short"),
        sa.Column("image_model", sa.String(100), nullable=True),
        sa.Column("tts_model", sa.String(100), nullable=True),
        sa.Column("tts_voice", sa.String(50), nullable=True),
        sa.Column("script", postgresql.JSONB(), nullable=True),
        sa.Column("script_status", sa.String(20), server_default="pending"),
        sa.Column("asset_status", sa.String(20), server_default="pending"),
        sa.Column("asset_error", sa.Text(), nullable=True),
        sa.Column("render_status", sa.String(20), server_default="pending"),
        sa.Column("render_error", sa.Text(), nullable=True),
        sa.Column("render_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("render_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("upload_status", sa.String(20), server_default="pending"),
        sa.Column("upload_error", sa.Text(), nullable=True),
        sa.Column("upload_privacy", sa.String(20), nullable=True),
        sa.Column("upload_video_id", sa.String(100), nullable=True),
        sa.Column("upload_url", sa.String(2048), nullable=True),
        sa.Column("upload_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("script_policy_status", sa.String(20), server_default="PENDING"),
        sa.Column("asset_policy_status", sa.String(20), server_default="PENDING"),
        sa.Column("policy_overall_status", sa.String(20), server_default="PENDING"),
        sa.Column("policy_summary", sa.Text(), nullable=True),
        sa.Column("policy_block_reasons", postgresql.JSONB(), nullable=True),
        sa.Column("policy_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("policy_error", sa.Text(), nullable=True),
        sa.Column("total_cost", sa.Float(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_videos_script_status", "videos", ["script_status"])
    op.create_index("ix_videos_asset_status", "videos", ["asset_status"])
    op.create_index("ix_videos_render_status", "videos", ["render_status"])
    op.create_index("ix_videos_upload_status", "videos", ["upload_status"])
    op.create_index("ix_videos_policy_overall_status", "videos", ["policy_overall_status"])

    # Video <-> article association
    op.create_table(
        "video_articles",
        sa.Column("video_id", sa.Integer(), nullable=False),
        sa.Column("article_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("video_id", "article_id"),
        sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
    )

    # Generated assets
    op.create_table(
        "video_assets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("video_id", sa.Integer(), nullable=False),
        sa.Column("asset_type", sa.String(50), nullable=False),
        sa.Column("asset_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("storage_key", sa.String(255), nullable=False),
        sa.Column("public_url", sa.String(2048), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "video_id", "asset_type", "asset_index", name="uq_video_asset_index"
        ),
    )
    op.create_index("ix_video_assets_video_id", "video_assets", ["video_id"])
    op.create_index("ix_video_assets_asset_type", "video_assets", ["asset_type"])

    # Cost log (append-only)
    op.create_table(
        "cost_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("video_id", sa.Integer(), nullable=False),
        sa.Column("log_type", sa.String(50), nullable=False),
        sa.Column("model_id", sa.String(100), nullable=False),
        sa.Column("input_tokens", sa.Integer(), server_default="0"),
        sa.Column("output_tokens", sa.Integer(), server_default="0"),
        sa.Column("cost", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_cost_logs_video_id", "cost_logs", ["video_id"])
    op.create_index("ix_cost_logs_log_type", "cost_logs", ["log_type"])

    # Policy runs and findings
    op.create_table(
        "policy_runs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("video_id", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("model_id", sa.String(100), nullable=False),
        sa.Column("input_tokens", sa.Integer(), server_default="0"),
        sa.Column("output_tokens", sa.Integer(), server_default="0"),
        sa.Column("cost", sa.Float(), server_default="0"),
        sa.Column("prompt_key", sa.String(255), nullable=True),
        sa.Column("response_key", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_policy_runs_video_id", "policy_runs", ["video_id"])
    op.create_index("ix_policy_runs_stage", "policy_runs", ["stage"])

    op.create_table(
        "policy_findings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_run_id", sa.Integer(), nullable=False),
        sa.Column("check_code", sa.String(100), nullable=False),
        sa.Column("check_label", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("evidence", postgresql.JSONB(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["policy_run_id"], ["policy_runs.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_policy_findings_policy_run_id", "policy_findings", ["policy_run_id"])


def downgrade() -> None:
    op.drop_table("policy_findings")
    op.drop_table("policy_runs")
    op.drop_table("cost_logs")
    op.drop_table("video_assets")
    op.drop_table("video_articles")
    op.drop_table("videos")
    op.drop_table("articles")
