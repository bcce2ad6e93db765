"""Configuration management for the fm2schema pipeline.

This module handles environment-based configuration using Pydantic Settings.
Every tunable the pipeline exposes (field patterns for structure detection,
strategy thresholds, cache sizing, logging) lives here and can be set through
``FM2SCHEMA_*`` environment variables.
"""

from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from ..pipeline.strategy import StrategyThresholds
    from ..structure.types import FieldPatterns


class PipelineSettings(BaseSettings):
    """Pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="FM2SCHEMA_", case_sensitive=False)

    # Environment
    environment: Literal["development", "testing", "production"] = Field(
        default="development", description="Application environment"
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")
    json_logs: bool = Field(default=False, description="Enable JSON formatted logs")

    # Structure detection
    sequential_patterns: list[str] = Field(
        default=[r"c\d+"],
        description="Regexes for sequentially numbered registry fields (c1, c2, ...)",
    )
    named_patterns: list[str] = Field(
        default=["commands"], description="Property names that denote a registry"
    )
    custom_patterns: list[str] = Field(
        default=[], description="Additional regexes treated as registry fields"
    )
    min_match_count: int = Field(
        default=2,
        ge=1,
        description="Pattern matches required before a schema is classified as a registry",
    )

    # Processing strategy
    sequential_max_files: int = Field(
        default=5, ge=0, description="Largest file set processed sequentially"
    )
    parallel_max_files: int = Field(
        default=20, ge=0, description="Largest file set processed by the fixed pool"
    )
    parallel_workers: int = Field(default=4, ge=1, description="Fixed pool size")
    adaptive_base_workers: int = Field(
        default=8, ge=1, description="Upper bound of the adaptive pool"
    )
    adaptive_threshold: int = Field(
        default=50,
        ge=1,
        description="File count at which the adaptive pool reaches its base size",
    )

    # Path cache
    cache_enabled: bool = Field(default=True, description="Enable the path cache")
    cache_max_size: int = Field(default=1000, ge=1, description="Maximum cache entries")
    cache_ttl_seconds: float = Field(
        default=300.0, gt=0, description="Cache entry time-to-live"
    )
    cache_complexity_eviction: bool = Field(
        default=False, description="Evict complex, stale paths before simple ones"
    )
    cache_eviction_fraction: float = Field(
        default=0.1, gt=0, le=1, description="Share of the cache removed per eviction"
    )

    # Rendering
    strict_structure: bool = Field(
        default=False,
        description="Require identical data/schema/template shapes before rendering",
    )

    @property
    def field_patterns(self) -> "FieldPatterns":
        """Create structure-detection patterns from individual fields."""
        from ..structure.types import FieldPatterns

        return FieldPatterns(
            sequential=self.sequential_patterns,
            named=self.named_patterns,
            custom=self.custom_patterns,
            min_match_count=self.min_match_count,
        )

    @property
    def strategy_thresholds(self) -> "StrategyThresholds":
        """Create processing-strategy thresholds from individual fields."""
        from ..pipeline.strategy import StrategyThresholds

        return StrategyThresholds(
            sequential_max_files=self.sequential_max_files,
            parallel_max_files=self.parallel_max_files,
            parallel_workers=self.parallel_workers,
            adaptive_base_workers=self.adaptive_base_workers,
            adaptive_threshold=self.adaptive_threshold,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


def get_settings(**overrides: object) -> PipelineSettings:
    """Build settings from the environment, applying explicit overrides."""
    return PipelineSettings(**overrides)  # type: ignore[arg-type]
