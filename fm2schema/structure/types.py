"""Structure classification types.

A schema's dataset is one of three shapes: a registry of named entries, a
homogeneous collection, or a custom nested shape. The classification is
immutable once produced; processing hints are derived from it on demand.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class StructureKind(str, Enum):
    """Dataset shape inferred from a schema."""

    REGISTRY = "registry"
    COLLECTION = "collection"
    CUSTOM = "custom"


@dataclass(frozen=True)
class StructureType:
    """Tagged dataset shape. Registries carry no path."""

    kind: StructureKind
    path: str | None = None

    @classmethod
    def registry(cls) -> "StructureType":
        return cls(StructureKind.REGISTRY)

    @classmethod
    def collection(cls, path: str) -> "StructureType":
        return cls(StructureKind.COLLECTION, path)

    @classmethod
    def custom(cls, path: str) -> "StructureType":
        return cls(StructureKind.CUSTOM, path)

    @property
    def is_registry(self) -> bool:
        return self.kind is StructureKind.REGISTRY

    def __str__(self) -> str:
        if self.path is None:
            return self.kind.value
        return f"{self.kind.value}({self.path})"


@dataclass(frozen=True)
class ProcessingHints:
    """How downstream stages should treat a detected structure."""

    requires_aggregation: bool
    expected_array_fields: list[str] = field(default_factory=list)
    derivation_rules: list[str] = field(default_factory=list)
    template_format: Literal["json", "yaml", "auto"] = "auto"


class FieldPatterns(BaseModel):
    """Property-name patterns used for registry detection."""

    sequential: list[str] = Field(
        default=[r"c\d+"], description="Regexes for numbered fields such as c1, c2"
    )
    named: list[str] = Field(
        default=["commands"], description="Exact property names denoting a registry"
    )
    custom: list[str] = Field(default=[], description="Additional regexes")
    min_match_count: int = Field(default=2, ge=1)

    model_config = {"frozen": True}

    @field_validator("sequential", "custom")
    @classmethod
    def _patterns_compile(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid field pattern '{pattern}': {e}") from e
        return patterns

    def matches(self, name: str) -> bool:
        """Check whether a property name matches any configured pattern."""
        if name in self.named:
            return True
        return any(
            re.fullmatch(pattern, name) for pattern in (*self.sequential, *self.custom)
        )
