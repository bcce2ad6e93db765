"""Document transformation pipeline."""

from .aggregation import (
    AggregatedResult,
    AggregationService,
    collection_path_for,
    item_defaults,
    populate_defaults,
)
from .coordinator import (
    Completed,
    DocumentTransformationCoordinator,
    Failed,
    PipelineStage,
    TransformationResult,
)
from .strategy import (
    ProcessingStrategy,
    StrategyKind,
    StrategyThresholds,
    execute_strategy,
    select_strategy,
)

__all__ = [
    "AggregatedResult",
    "AggregationService",
    "collection_path_for",
    "item_defaults",
    "populate_defaults",
    "Completed",
    "DocumentTransformationCoordinator",
    "Failed",
    "PipelineStage",
    "TransformationResult",
    "ProcessingStrategy",
    "StrategyKind",
    "StrategyThresholds",
    "execute_strategy",
    "select_strategy",
]
