"""Celery job definitions."""

from newsreel_engine.jobs.asset_pipeline import generate_assets_task, run_asset_generation
from newsreel_engine.jobs.policy_tasks import check_script_policy_task, run_script_policy_check
from newsreel_engine.jobs.publish_pipeline import publish_video_task, run_video_publish
from newsreel_engine.jobs.render_pipeline import render_video_task, run_video_render

__all__ = [
    # Asset pipeline
    "generate_assets_task",
    "run_asset_generation",
    # Render pipeline
    "render_video_task",
    "run_video_render",
    # Publish pipeline
    "publish_video_task",
    "run_video_publish",
    # Policy
    "check_script_policy_task",
    "run_script_policy_check",
]
