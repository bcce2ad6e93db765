"""Unit tests for processing strategy selection and execution."""

import threading
import time

import pytest

from fm2schema.pipeline import (
    ProcessingStrategy,
    StrategyKind,
    StrategyThresholds,
    execute_strategy,
    select_strategy,
)


class TestStrategySelection:
    """Test picking a strategy from the file count."""

    @pytest.mark.parametrize(
        ("count", "kind"),
        [
            (0, StrategyKind.SEQUENTIAL),
            (5, StrategyKind.SEQUENTIAL),
            (6, StrategyKind.PARALLEL),
            (20, StrategyKind.PARALLEL),
            (21, StrategyKind.ADAPTIVE),
        ],
    )
    def test_thresholds(self, count, kind):
        """Test the default file-count boundaries."""
        assert select_strategy(count).kind is kind

    def test_default_pool_sizes(self):
        """Test worker counts for the default strategies."""
        assert select_strategy(10).workers == 4
        adaptive = select_strategy(100)
        assert (adaptive.workers, adaptive.threshold) == (8, 50)

    def test_override_wins(self):
        """Test that an explicit strategy is used whatever the count."""
        override = ProcessingStrategy.parallel(2)
        assert select_strategy(1, override=override) is override

    def test_custom_thresholds(self):
        """Test selection with configured boundaries."""
        limits = StrategyThresholds(sequential_max_files=1, parallel_max_files=2)
        assert select_strategy(2, limits).kind is StrategyKind.PARALLEL
        assert select_strategy(3, limits).kind is StrategyKind.ADAPTIVE

    def test_invalid_pool_sizes(self):
        """Test that pools need at least one worker."""
        with pytest.raises(ValueError):
            ProcessingStrategy.parallel(0)
        with pytest.raises(ValueError):
            ProcessingStrategy.adaptive(4, 0)


class TestWorkerScaling:
    """Test pool sizing per strategy."""

    def test_parallel_capped_by_remaining(self):
        """Test that parallel pools never exceed the work left."""
        strategy = ProcessingStrategy.parallel(4)
        assert strategy.workers_for(2) == 2
        assert strategy.workers_for(10) == 4

    def test_adaptive_scales_with_remaining(self):
        """Test that adaptive pools shrink as work runs out."""
        strategy = ProcessingStrategy.adaptive(8, 50)
        assert strategy.workers_for(100) == 8
        assert strategy.workers_for(25) == 4
        assert strategy.workers_for(1) == 1
        assert strategy.workers_for(0) == 1

    def test_string_forms(self):
        """Test the human-readable strategy names."""
        assert str(ProcessingStrategy.sequential()) == "sequential"
        assert str(ProcessingStrategy.parallel(3)) == "parallel(workers=3)"
        assert str(ProcessingStrategy.adaptive(8, 50)) == "adaptive(base_workers=8, threshold=50)"


class TestStrategyExecution:
    """Test running workers under each strategy."""

    @pytest.mark.asyncio
    async def test_empty_input(self):
        """Test that no inputs produce no results."""
        assert await execute_strategy(ProcessingStrategy.parallel(2), [], str) == []

    @pytest.mark.asyncio
    async def test_sequential_preserves_order(self):
        """Test sequential processing."""
        results = await execute_strategy(ProcessingStrategy.sequential(), [1, 2, 3], lambda n: n * 10)
        assert results == [10, 20, 30]

    @pytest.mark.asyncio
    async def test_parallel_preserves_order_despite_completion_order(self):
        """Test that slower early items still come back first."""

        def worker(n):
            time.sleep(0.01 * (5 - n))
            return n

        results = await execute_strategy(ProcessingStrategy.parallel(4), [0, 1, 2, 3, 4], worker)
        assert results == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_parallel_respects_pool_size(self):
        """Test that no more than the pool size run at once."""
        lock = threading.Lock()
        active = 0
        peak = 0

        def worker(n):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1
            return n

        await execute_strategy(ProcessingStrategy.parallel(2), list(range(8)), worker)
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_adaptive_batches_in_order(self):
        """Test adaptive processing across several batches."""
        strategy = ProcessingStrategy.adaptive(3, 4)
        results = await execute_strategy(strategy, list(range(10)), lambda n: n + 1)
        assert results == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_worker_exception_propagates(self):
        """Test that a raising worker fails the whole run."""

        def worker(n):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await execute_strategy(ProcessingStrategy.parallel(2), [1, 2], worker)
