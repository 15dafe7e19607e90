"""Celery worker configuration.

Queues:
- high: asset generation, which holds the generation API quota
- render: sandboxed composition renders, long running
- default: policy checks and publishing
"""

from typing import Any

import structlog
from celery import Celery
from celery.signals import task_postrun, task_prerun

from newsreel_engine.config import settings
from newsreel_engine.logging import setup_logging

setup_logging()

WORKER_QUEUES = ("high", "render", "default")

celery_app = Celery(
    "newsreel_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A lost worker must not drop a video mid-pipeline; every step is resumable
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Long videos render slowly
    task_time_limit=1800,
    task_soft_time_limit=1740,
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    result_expires=86400,
    task_default_queue="default",
    task_routes={
        "assets.generate_assets": {"queue": "high"},
        "render.render_video": {"queue": "render"},
        "policy.check_script": {"queue": "default"},
        "publish.publish_video": {"queue": "default"},
    },
)


@task_prerun.connect
def bind_task_context(task_id: str | None = None, task: Any = None, **_: Any) -> None:
    """Tag every event of a task run with the Celery task id and name."""
    structlog.contextvars.bind_contextvars(
        task_id=task_id, task_name=getattr(task, "name", None)
    )


@task_postrun.connect
def clear_task_context(**_: Any) -> None:
    structlog.contextvars.unbind_contextvars("task_id", "task_name")


celery_app.autodiscover_tasks(["newsreel_engine.jobs"])
