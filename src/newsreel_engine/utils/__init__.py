"""Shared utilities."""

from newsreel_engine.utils.async_utils import run_async
from newsreel_engine.utils.concurrency import BatchResult, run_bounded
from newsreel_engine.utils.retry import AI_CALL, DEFAULT, RetryPolicy, run_step

__all__ = [
    "AI_CALL",
    "BatchResult",
    "DEFAULT",
    "RetryPolicy",
    "run_async",
    "run_bounded",
    "run_step",
]
