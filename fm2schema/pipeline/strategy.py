"""Document processing strategies.

Small file sets are processed sequentially, medium sets by a fixed worker
pool, and large sets by an adaptive pool that re-evaluates its size batch by
batch. Workers share no mutable state; results always come back in input
order regardless of completion order.
"""

import asyncio
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from ..core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
P = TypeVar("P")


class StrategyKind(str, Enum):
    """How documents are scheduled."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    ADAPTIVE = "adaptive"


@dataclass(frozen=True)
class StrategyThresholds:
    """File-count boundaries and pool sizes used for strategy selection."""

    sequential_max_files: int = 5
    parallel_max_files: int = 20
    parallel_workers: int = 4
    adaptive_base_workers: int = 8
    adaptive_threshold: int = 50


@dataclass(frozen=True)
class ProcessingStrategy:
    """A chosen strategy.

    ``workers`` is the pool size for parallel and the upper bound for
    adaptive; ``threshold`` is the adaptive batch size.
    """

    kind: StrategyKind
    workers: int = 1
    threshold: int | None = None

    @classmethod
    def sequential(cls) -> "ProcessingStrategy":
        return cls(StrategyKind.SEQUENTIAL)

    @classmethod
    def parallel(cls, workers: int = 4) -> "ProcessingStrategy":
        if workers < 1:
            raise ValueError("workers must be at least 1")
        return cls(StrategyKind.PARALLEL, workers)

    @classmethod
    def adaptive(cls, base_workers: int = 8, threshold: int = 50) -> "ProcessingStrategy":
        if base_workers < 1 or threshold < 1:
            raise ValueError("base_workers and threshold must be at least 1")
        return cls(StrategyKind.ADAPTIVE, base_workers, threshold)

    def workers_for(self, remaining: int) -> int:
        """Pool size for a number of outstanding documents."""
        if remaining <= 0:
            return 1
        if self.kind is StrategyKind.SEQUENTIAL:
            return 1
        if self.kind is StrategyKind.PARALLEL:
            return max(1, min(self.workers, remaining))
        threshold = self.threshold or remaining
        scaled = math.ceil(self.workers * min(1.0, remaining / threshold))
        return max(1, min(self.workers, scaled, remaining))

    def __str__(self) -> str:
        if self.kind is StrategyKind.SEQUENTIAL:
            return "sequential"
        if self.kind is StrategyKind.PARALLEL:
            return f"parallel(workers={self.workers})"
        return f"adaptive(base_workers={self.workers}, threshold={self.threshold})"


def select_strategy(
    file_count: int,
    thresholds: StrategyThresholds | None = None,
    override: ProcessingStrategy | None = None,
) -> ProcessingStrategy:
    """Pick a strategy for a file count; an explicit override always wins."""
    if override is not None:
        return override
    limits = thresholds or StrategyThresholds()
    if file_count <= limits.sequential_max_files:
        return ProcessingStrategy.sequential()
    if file_count <= limits.parallel_max_files:
        return ProcessingStrategy.parallel(limits.parallel_workers)
    return ProcessingStrategy.adaptive(
        limits.adaptive_base_workers, limits.adaptive_threshold
    )


async def execute_strategy(
    strategy: ProcessingStrategy,
    inputs: Sequence[P],
    worker: Callable[[P], T],
) -> list[T]:
    """Run ``worker`` over every input and return results in input order.

    ``worker`` is a blocking callable; parallel strategies run it on threads.
    It should report failures in its return value; an exception raised by
    ``worker`` propagates to the caller.
    """
    if not inputs:
        return []

    if strategy.kind is StrategyKind.SEQUENTIAL:
        return [worker(item) for item in inputs]

    if strategy.kind is StrategyKind.PARALLEL:
        return await _run_pool(inputs, worker, strategy.workers_for(len(inputs)))

    batch_size = strategy.threshold or len(inputs)
    results: list[T] = []
    for start in range(0, len(inputs), batch_size):
        batch = inputs[start : start + batch_size]
        workers = strategy.workers_for(len(inputs) - start)
        logger.debug(
            "Adaptive batch", start=start, size=len(batch), workers=workers
        )
        results.extend(await _run_pool(batch, worker, workers))
    return results


async def _run_pool(
    inputs: Sequence[P], worker: Callable[[P], T], workers: int
) -> list[T]:
    semaphore = asyncio.Semaphore(workers)

    async def run_one(item: P) -> T:
        async with semaphore:
            return await asyncio.to_thread(worker, item)

    return list(await asyncio.gather(*(run_one(item) for item in inputs)))
