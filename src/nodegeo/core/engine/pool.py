"""Bounded-concurrency batch executor."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import structlog

if TYPE_CHECKING:
    from nodegeo.core.models.config import Config

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Type aliases for per-item transforms
ItemProcessor = Callable[[T], Awaitable[R]]
IndexedItemProcessor = Callable[[T, int], Awaitable[R]]


@dataclass
class ItemOutcome(Generic[R]):
    """Result or failure for one input slot."""

    index: int
    value: R | None = None
    error: Exception | None = None
    duration_ms: float = 0
    worker_id: int = 0

    @property
    def ok(self) -> bool:
        """True if the transform returned without raising."""
        return self.error is None

    @property
    def error_type(self) -> str | None:
        return type(self.error).__name__ if self.error is not None else None


@dataclass
class WorkerStats:
    """Worker statistics."""

    items_completed: int = 0
    items_failed: int = 0
    total_duration_ms: float = 0
    errors: list[str] = field(default_factory=list)

    @property
    def avg_item_duration_ms(self) -> float:
        """Calculate average item duration."""
        total = self.items_completed + self.items_failed
        if total == 0:
            return 0
        return self.total_duration_ms / total


class BoundedExecutor:
    """
    Applies an async transform to every item with at most K in flight.

    A fixed set of logical workers share one index counter. Each worker
    claims the next unclaimed index, awaits the transform, then claims
    again, so no item runs twice and no worker idles while work remains.
    Failures are captured per item and never abort the batch.
    """

    def __init__(self, max_concurrency: int = 10) -> None:
        """
        Initialize executor.

        Args:
            max_concurrency: Maximum transforms running at once
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._max_concurrency = max_concurrency
        self._active = 0

        self._stats = {
            "total_batches": 0,
            "total_items": 0,
            "total_succeeded": 0,
            "total_failed": 0,
            "peak_concurrency": 0,
        }
        self._worker_stats: list[WorkerStats] = []

    @property
    def max_concurrency(self) -> int:
        """Get concurrency limit."""
        return self._max_concurrency

    @property
    def active(self) -> int:
        """Number of transforms currently awaiting."""
        return self._active

    @property
    def stats(self) -> dict[str, int]:
        """Get executor statistics."""
        return self._stats.copy()

    async def run_outcomes(
        self,
        items: Iterable[T],
        processor: ItemProcessor[T, R],
    ) -> list[ItemOutcome[R]]:
        """
        Run processor over items and report every slot.

        Args:
            items: Input items
            processor: Async transform applied to each item

        Returns:
            One ItemOutcome per input item, in input order
        """
        batch = list(items)
        return await self._run(batch, lambda index: processor(batch[index]))

    async def map(
        self,
        items: Iterable[T],
        processor: ItemProcessor[T, R],
    ) -> list[R]:
        """
        Run processor over items, dropping failed slots.

        Surviving results keep the relative order of their inputs.
        """
        outcomes = await self.run_outcomes(items, processor)
        return [outcome.value for outcome in outcomes if outcome.ok]  # type: ignore[misc]

    async def map_with_index(
        self,
        items: Iterable[T],
        processor: IndexedItemProcessor[T, R],
    ) -> list[R]:
        """Like map(), but the processor also receives the item's index."""
        batch = list(items)
        outcomes = await self._run(batch, lambda index: processor(batch[index], index))
        return [outcome.value for outcome in outcomes if outcome.ok]  # type: ignore[misc]

    async def _run(
        self,
        batch: list[Any],
        call: Callable[[int], Awaitable[R]],
    ) -> list[ItemOutcome[R]]:
        total = len(batch)
        if total == 0:
            return []

        outcomes: list[ItemOutcome[R] | None] = [None] * total
        worker_count = min(self._max_concurrency, total)
        worker_stats = [WorkerStats() for _ in range(worker_count)]
        next_index = 0

        async def work(worker_id: int) -> None:
            nonlocal next_index
            stats = worker_stats[worker_id]

            while next_index < total:
                # Claim and advance with no await in between
                index = next_index
                next_index += 1

                self._active += 1
                self._stats["peak_concurrency"] = max(
                    self._stats["peak_concurrency"], self._active
                )
                started = time.perf_counter()
                try:
                    value = await call(index)
                except Exception as e:
                    duration_ms = (time.perf_counter() - started) * 1000
                    stats.items_failed += 1
                    stats.errors.append(str(e))
                    outcomes[index] = ItemOutcome(
                        index=index,
                        error=e,
                        duration_ms=duration_ms,
                        worker_id=worker_id,
                    )
                    logger.debug(
                        "Item failed",
                        index=index,
                        worker_id=worker_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                else:
                    duration_ms = (time.perf_counter() - started) * 1000
                    stats.items_completed += 1
                    outcomes[index] = ItemOutcome(
                        index=index,
                        value=value,
                        duration_ms=duration_ms,
                        worker_id=worker_id,
                    )
                finally:
                    self._active -= 1
                stats.total_duration_ms += duration_ms

        await asyncio.gather(*(work(worker_id) for worker_id in range(worker_count)))

        results = [outcome for outcome in outcomes if outcome is not None]
        failed = sum(1 for outcome in results if not outcome.ok)

        self._worker_stats = worker_stats
        self._stats["total_batches"] += 1
        self._stats["total_items"] += total
        self._stats["total_succeeded"] += total - failed
        self._stats["total_failed"] += failed

        if failed:
            logger.debug(
                "Batch settled with failures",
                total=total,
                failed=failed,
                workers=worker_count,
            )

        return results

    def get_worker_stats(self) -> list[dict[str, Any]]:
        """Get statistics for the workers of the most recent batch."""
        return [
            {
                "id": worker_id,
                "items_completed": stats.items_completed,
                "items_failed": stats.items_failed,
                "avg_duration_ms": stats.avg_item_duration_ms,
            }
            for worker_id, stats in enumerate(self._worker_stats)
        ]


def create_executor(config: Config | None = None) -> BoundedExecutor:
    """Build an executor sized by ``config.concurrency.max_concurrency``."""
    from nodegeo.core.models.config import Config

    config = config or Config()
    return BoundedExecutor(max_concurrency=config.concurrency.max_concurrency)


async def batch_process(
    items: Iterable[T],
    processor: ItemProcessor[T, R],
    concurrency: int = 10,
) -> list[R]:
    """Map processor over items with bounded concurrency, dropping failures."""
    return await BoundedExecutor(max_concurrency=concurrency).map(items, processor)


async def batch_process_with_index(
    items: Iterable[T],
    processor: IndexedItemProcessor[T, R],
    concurrency: int = 10,
) -> list[R]:
    """Indexed variant of batch_process()."""
    return await BoundedExecutor(max_concurrency=concurrency).map_with_index(items, processor)
