"""Tests for BoundedExecutor and the batch_process helpers."""

from __future__ import annotations

import asyncio

import pytest

from nodegeo.core.engine.pool import (
    BoundedExecutor,
    ItemOutcome,
    WorkerStats,
    batch_process,
    batch_process_with_index,
    create_executor,
)
from nodegeo.core.models.config import Config


class ConcurrencyRecorder:
    """Transform that records how many invocations overlap."""

    def __init__(self, delay: float = 0.001) -> None:
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.calls: list[object] = []

    async def __call__(self, item: object) -> object:
        self.calls.append(item)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            return item
        finally:
            self.active -= 1


# ============================================================================
# CONSTRUCTION
# ============================================================================


class TestBoundedExecutorInit:
    """Tests for BoundedExecutor initialization."""

    def test_default_concurrency_is_ten(self):
        executor = BoundedExecutor()
        assert executor.max_concurrency == 10

    def test_custom_concurrency(self):
        executor = BoundedExecutor(max_concurrency=3)
        assert executor.max_concurrency == 3

    @pytest.mark.parametrize("value", [0, -1])
    def test_rejects_concurrency_below_one(self, value):
        with pytest.raises(ValueError, match="at least 1"):
            BoundedExecutor(max_concurrency=value)

    def test_initial_stats_are_zero(self):
        stats = BoundedExecutor().stats
        assert stats["total_batches"] == 0
        assert stats["total_items"] == 0
        assert stats["total_succeeded"] == 0
        assert stats["total_failed"] == 0
        assert stats["peak_concurrency"] == 0

    def test_stats_returns_copy(self):
        executor = BoundedExecutor()
        executor.stats["total_items"] = 99
        assert executor.stats["total_items"] == 0


# ============================================================================
# ORDERING AND FAILURE POLICY
# ============================================================================


class TestMap:
    """Tests for BoundedExecutor.map()."""

    @pytest.mark.asyncio
    async def test_failed_item_is_omitted_and_order_kept(self):
        """Failure on 'c' leaves the other results in input order."""

        async def upper(item: str) -> str:
            await asyncio.sleep(0.001 if item in ("a", "d") else 0)
            if item == "c":
                raise RuntimeError("boom")
            return item.upper()

        executor = BoundedExecutor(max_concurrency=2)
        results = await executor.map(["a", "b", "c", "d", "e"], upper)

        assert results == ["A", "B", "D", "E"]

    @pytest.mark.asyncio
    async def test_results_are_position_stable_not_completion_ordered(self):
        """Slow early items still come first."""
        delays = {0: 0.02, 1: 0.01, 2: 0.0}

        async def slow(item: int) -> int:
            await asyncio.sleep(delays[item])
            return item * 10

        results = await BoundedExecutor(max_concurrency=3).map([0, 1, 2], slow)
        assert results == [0, 10, 20]

    @pytest.mark.asyncio
    async def test_all_failures_return_empty_list(self):
        async def fail(item: int) -> int:
            raise ValueError(item)

        results = await BoundedExecutor(max_concurrency=4).map(range(10), fail)
        assert results == []

    @pytest.mark.asyncio
    async def test_none_results_are_kept(self):
        """Only raised failures are dropped, a None return is a result."""

        async def nothing(item: int) -> None:
            return None

        results = await BoundedExecutor().map([1, 2, 3], nothing)
        assert results == [None, None, None]

    @pytest.mark.asyncio
    async def test_empty_input_does_not_call_processor(self):
        recorder = ConcurrencyRecorder()
        results = await BoundedExecutor().map([], recorder)
        assert results == []
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_accepts_any_iterable(self):
        async def double(item: int) -> int:
            return item * 2

        results = await BoundedExecutor(max_concurrency=2).map((i for i in range(4)), double)
        assert results == [0, 2, 4, 6]


# ============================================================================
# CONCURRENCY BOUND
# ============================================================================


class TestConcurrencyBound:
    """Tests that no more than K transforms are ever active."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 3, 7])
    @pytest.mark.parametrize("count", [1, 5, 20])
    async def test_peak_never_exceeds_limit(self, limit, count):
        recorder = ConcurrencyRecorder()
        executor = BoundedExecutor(max_concurrency=limit)

        results = await executor.map(list(range(count)), recorder)

        assert results == list(range(count))
        assert recorder.peak <= limit
        assert recorder.peak == min(limit, count)
        assert executor.stats["peak_concurrency"] == recorder.peak

    @pytest.mark.asyncio
    async def test_each_item_attempted_exactly_once(self):
        recorder = ConcurrencyRecorder(delay=0)
        items = list(range(50))

        await BoundedExecutor(max_concurrency=6).map(items, recorder)

        assert sorted(recorder.calls) == items

    @pytest.mark.asyncio
    async def test_limit_of_one_runs_sequentially(self):
        order: list[str] = []

        async def record(item: int) -> int:
            order.append(f"start-{item}")
            await asyncio.sleep(0)
            order.append(f"end-{item}")
            return item

        await BoundedExecutor(max_concurrency=1).map([0, 1, 2], record)

        assert order == ["start-0", "end-0", "start-1", "end-1", "start-2", "end-2"]

    @pytest.mark.asyncio
    async def test_failures_do_not_reduce_worker_count(self):
        """A failing item frees its worker for the next item."""
        recorder = ConcurrencyRecorder()

        async def flaky(item: int) -> int:
            if item % 2:
                raise RuntimeError("odd")
            return await recorder(item)

        results = await BoundedExecutor(max_concurrency=3).map(range(12), flaky)

        assert results == [0, 2, 4, 6, 8, 10]
        assert recorder.peak <= 3

    @pytest.mark.asyncio
    async def test_active_is_zero_after_batch(self):
        executor = BoundedExecutor(max_concurrency=2)
        await executor.map(range(5), ConcurrencyRecorder())
        assert executor.active == 0


# ============================================================================
# OUTCOMES
# ============================================================================


class TestRunOutcomes:
    """Tests for the tagged per-item outcomes."""

    @pytest.mark.asyncio
    async def test_one_outcome_per_item_in_order(self):
        async def check(item: int) -> int:
            if item == 2:
                raise KeyError("missing")
            return item + 100

        outcomes = await BoundedExecutor(max_concurrency=2).run_outcomes(range(4), check)

        assert [o.index for o in outcomes] == [0, 1, 2, 3]
        assert [o.ok for o in outcomes] == [True, True, False, True]
        assert outcomes[0].value == 100
        assert outcomes[2].value is None
        assert isinstance(outcomes[2].error, KeyError)
        assert outcomes[2].error_type == "KeyError"
        assert outcomes[1].error_type is None

    @pytest.mark.asyncio
    async def test_outcomes_record_worker_and_duration(self):
        outcomes = await BoundedExecutor(max_concurrency=2).run_outcomes(
            range(4), ConcurrencyRecorder()
        )
        assert {o.worker_id for o in outcomes} <= {0, 1}
        assert all(o.duration_ms >= 0 for o in outcomes)

    def test_item_outcome_ok_property(self):
        assert ItemOutcome(index=0, value=1).ok is True
        assert ItemOutcome(index=0, error=RuntimeError("x")).ok is False

    @pytest.mark.asyncio
    async def test_stats_accumulate_across_batches(self):
        async def maybe(item: int) -> int:
            if item == 0:
                raise RuntimeError("zero")
            return item

        executor = BoundedExecutor(max_concurrency=2)
        await executor.map(range(3), maybe)
        await executor.map(range(2), maybe)

        stats = executor.stats
        assert stats["total_batches"] == 2
        assert stats["total_items"] == 5
        assert stats["total_succeeded"] == 3
        assert stats["total_failed"] == 2

    @pytest.mark.asyncio
    async def test_worker_stats_for_last_batch(self):
        async def maybe(item: int) -> int:
            if item == 1:
                raise RuntimeError("one")
            return item

        executor = BoundedExecutor(max_concurrency=2)
        await executor.map(range(4), maybe)

        worker_stats = executor.get_worker_stats()
        assert len(worker_stats) == 2
        assert sum(w["items_completed"] for w in worker_stats) == 3
        assert sum(w["items_failed"] for w in worker_stats) == 1

    def test_worker_stats_average_with_no_items(self):
        assert WorkerStats().avg_item_duration_ms == 0


# ============================================================================
# INDEXED VARIANT AND HELPERS
# ============================================================================


class TestHelpers:
    """Tests for map_with_index() and module-level helpers."""

    @pytest.mark.asyncio
    async def test_map_with_index_passes_index(self):
        async def pair(item: str, index: int) -> tuple[int, str]:
            return index, item

        results = await BoundedExecutor(max_concurrency=2).map_with_index(["x", "y", "z"], pair)
        assert results == [(0, "x"), (1, "y"), (2, "z")]

    @pytest.mark.asyncio
    async def test_map_with_index_drops_failures(self):
        async def pair(item: str, index: int) -> str:
            if index == 1:
                raise RuntimeError("skip")
            return f"{index}:{item}"

        results = await BoundedExecutor().map_with_index(["x", "y", "z"], pair)
        assert results == ["0:x", "2:z"]

    @pytest.mark.asyncio
    async def test_batch_process(self):
        recorder = ConcurrencyRecorder()
        results = await batch_process(list(range(8)), recorder, concurrency=2)
        assert results == list(range(8))
        assert recorder.peak == 2

    @pytest.mark.asyncio
    async def test_batch_process_default_concurrency(self):
        recorder = ConcurrencyRecorder()
        await batch_process(list(range(25)), recorder)
        assert recorder.peak == 10

    @pytest.mark.asyncio
    async def test_batch_process_with_index(self):
        async def add(item: int, index: int) -> int:
            if item < 0:
                raise ValueError("negative")
            return item + index

        results = await batch_process_with_index([5, -1, 7], add, concurrency=2)
        assert results == [5, 9]


# ============================================================================
# FACTORY
# ============================================================================


class TestCreateExecutor:
    """Tests for create_executor()."""

    def test_default_config(self):
        assert create_executor().max_concurrency == 10

    def test_sized_from_config(self):
        config = Config(concurrency={"max_concurrency": 4})
        assert create_executor(config).max_concurrency == 4

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("NODEGEO_CONCURRENCY__MAX_CONCURRENCY", "3")
        assert create_executor().max_concurrency == 3

    @pytest.mark.asyncio
    async def test_bound_applies_to_map(self):
        recorder = ConcurrencyRecorder()
        executor = create_executor(Config(concurrency={"max_concurrency": 3}))
        await executor.map(range(9), recorder)
        assert recorder.peak == 3
