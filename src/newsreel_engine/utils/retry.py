"""Per-step retry policies for the durable pipelines.

Database steps retry on a constant delay; generation API steps back off
exponentially. Precondition and data-integrity errors are never retried.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)
from tenacity.wait import wait_base

from newsreel_engine.config import settings
from newsreel_engine.errors import FATAL_ERRORS
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How a pipeline step is retried."""

    name: str
    attempts: int
    delay_seconds: float
    backoff: Literal["constant", "exponential"] = "constant"
    max_delay_seconds: float = 60.0

    def wait(self) -> wait_base:
        if self.backoff == "exponential":
            return wait_exponential(
                multiplier=self.delay_seconds,
                min=self.delay_seconds,
                max=self.max_delay_seconds,
            )
        return wait_fixed(self.delay_seconds)

    def with_delay(self, delay_seconds: float) -> "RetryPolicy":
        """Copy of this policy with another base delay (tests use 0)."""
        return RetryPolicy(
            name=self.name,
            attempts=self.attempts,
            delay_seconds=delay_seconds,
            backoff=self.backoff,
            max_delay_seconds=self.max_delay_seconds,
        )


DEFAULT = RetryPolicy(
    name="default",
    attempts=settings.step_retry_attempts,
    delay_seconds=settings.step_retry_delay_seconds,
    backoff="constant",
)

AI_CALL = RetryPolicy(
    name="ai_call",
    attempts=settings.step_retry_attempts,
    delay_seconds=settings.ai_call_retry_delay_seconds,
    backoff="exponential",
)


def _log_retry(step: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "pipeline_step_retrying",
            step=step,
            policy=policy.name,
            attempt=state.attempt_number,
            max_attempts=policy.attempts,
            error=str(error),
        )

    return before_sleep


def run_step(step: str, policy: RetryPolicy, fn: Callable[[], T]) -> T:
    """Run one pipeline step under its retry policy.

    The step either completes (its writes committed inside ``fn``) or is rerun
    from the start. The last exception is re-raised once attempts run out.
    """
    structlog.contextvars.bind_contextvars(step=step)
    logger.info("pipeline_step_started", policy=policy.name)
    retrying = Retrying(
        stop=stop_after_attempt(policy.attempts),
        wait=policy.wait(),
        retry=retry_if_not_exception_type(FATAL_ERRORS),
        before_sleep=_log_retry(step, policy),
        reraise=True,
    )
    try:
        result = retrying(fn)
    finally:
        structlog.contextvars.unbind_contextvars("step")
    logger.info("pipeline_step_completed", step=step)
    return result
