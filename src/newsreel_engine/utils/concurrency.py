"""Bounded-parallelism executor for independent async tasks.

A fixed pool of workers pulls task indices from a queue, so at most ``limit``
tasks are in flight and a freed slot immediately picks up the next queued
task. Failures never cancel the batch: every task settles and its result or
exception is recorded under its index.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from newsreel_engine.errors import TaskBatchError
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]


@dataclass
class BatchResult(Generic[T]):
    """Per-index outcome of a bounded batch."""

    total: int
    results: dict[int, T] = field(default_factory=dict)
    errors: dict[int, BaseException] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def ordered_results(self) -> list[tuple[int, T]]:
        """Successful results sorted by task index."""
        return sorted(self.results.items())

    def error_summary(self, label: str = "Task") -> str:
        """Failed tasks in index order, e.g. ``"Slide 4: timeout; Slide 7: 429"``."""
        return "; ".join(f"{label} {i}: {self.errors[i]}" for i in sorted(self.errors))

    def raise_for_errors(self, prefix: str = "Batch partially failed", label: str = "Task") -> None:
        """Raise TaskBatchError naming every failed index, if any failed."""
        if self.errors:
            raise TaskBatchError(f"{prefix}: {self.error_summary(label)}", dict(self.errors))


async def run_bounded(
    factories: Sequence[TaskFactory[T]],
    limit: int,
    indices: Sequence[int] | None = None,
) -> BatchResult[T]:
    """Run task factories with at most ``limit`` in flight.

    Args:
        factories: Zero-argument callables each returning an awaitable
        limit: Maximum concurrent tasks (must be >= 1)
        indices: Optional keys for the results (defaults to 0..N-1)

    Returns:
        BatchResult with results and errors keyed by index. Returns only after
        every task has settled.
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be >= 1, got {limit}")
    keys = list(indices) if indices is not None else list(range(len(factories)))
    if len(keys) != len(factories):
        raise ValueError("indices must match factories one to one")

    batch: BatchResult[T] = BatchResult(total=len(factories))
    if not factories:
        return batch

    queue: asyncio.Queue[tuple[int, TaskFactory[T]]] = asyncio.Queue()
    for key, factory in zip(keys, factories):
        queue.put_nowait((key, factory))

    async def worker(worker_id: int) -> None:
        while True:
            try:
                key, factory = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                batch.results[key] = await factory()
            except Exception as e:
                batch.errors[key] = e
                logger.warning(
                    "bounded_task_failed",
                    task_index=key,
                    worker_id=worker_id,
                    error=str(e),
                )
            finally:
                queue.task_done()

    worker_count = min(limit, len(factories))
    await asyncio.gather(*(worker(i) for i in range(worker_count)))

    logger.debug(
        "bounded_batch_completed",
        total=batch.total,
        succeeded=len(batch.results),
        failed=len(batch.errors),
        limit=limit,
    )
    return batch
