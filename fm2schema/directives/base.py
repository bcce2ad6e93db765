"""Base classes for directive handlers.

Each directive kind is owned by exactly one handler. A handler knows how to
read its directive from a schema node, check the value, and apply it to the
aggregated data. Ordering metadata (priority and dependencies) lets the
registry run handlers in a safe sequence without knowing their semantics.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..core.exceptions import ConfigurationError
from ..schema.document import SchemaDocument
from .kinds import DirectiveKind
from .paths import PathResolver


@dataclass(frozen=True)
class Directive:
    """A directive read from one schema node.

    Absence is a normal state: ``is_present`` is False and ``value`` is None.
    ``target_path`` is the data path the directive applies to, which is the
    property path of the node that declared it.
    """

    kind: DirectiveKind
    value: Any = None
    is_present: bool = False
    target_path: str = ""
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.kind.value

    @classmethod
    def absent(cls, kind: DirectiveKind, target_path: str = "") -> "Directive":
        return cls(kind=kind, target_path=target_path)


@dataclass
class DirectiveOutcome:
    """Updated data plus handler-specific metadata."""

    data: Any
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DirectiveContext:
    """What a handler may read besides the data it transforms.

    ``items`` are the collected front-matter records the directive derives
    from; ``sources`` holds the document path of each item, in the same order.
    """

    schema: SchemaDocument | None = None
    collection_path: str | None = None
    items: list[Any] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    resolver: PathResolver = field(default_factory=PathResolver)


class DirectiveHandler(ABC):
    """Base class for directive handlers.

    Subclasses set ``kind`` and ``priority``, list any ``dependencies`` and
    implement ``validate_value`` and ``process``.
    """

    kind: ClassVar[DirectiveKind]
    priority: ClassVar[int]
    dependencies: ClassVar[tuple[DirectiveKind, ...]] = ()
    # Whether a directive declared inside the collection's item schema runs
    # once per collected item instead of once on the aggregate
    item_scoped: ClassVar[bool] = False
    # Whether the handler writes its result to the declaring property
    writes_target: ClassVar[bool] = False

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def dependency_names(self) -> list[str]:
        return [dependency.value for dependency in self.dependencies]

    def extract_config(self, node: dict[str, Any], target_path: str = "") -> Directive:
        """Read this handler's directive from a schema node.

        Returns:
            The directive, marked absent when the node does not declare it

        Raises:
            ConfigurationError: If the directive is present but malformed
        """
        if not isinstance(node, dict) or self.name not in node:
            return Directive.absent(self.kind, target_path)
        value = self.validate_value(node[self.name], target_path)
        return Directive(
            kind=self.kind,
            value=value,
            is_present=True,
            target_path=target_path,
            options=self.extract_options(node, target_path),
        )

    def extract_options(self, node: dict[str, Any], target_path: str) -> dict[str, Any]:
        """Read modifier keys that accompany the directive. None by default."""
        return {}

    def extract_extension(self, node: dict[str, Any]) -> tuple[str, Any] | None:
        """Return the raw ``(key, value)`` pair if the node declares it."""
        if isinstance(node, dict) and self.name in node:
            return self.name, node[self.name]
        return None

    @abstractmethod
    def validate_value(self, value: Any, target_path: str) -> Any:
        """Check a raw directive value and return its normalized form.

        Raises:
            ConfigurationError: If the value is malformed
        """
        pass

    @abstractmethod
    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        """Apply the directive to data.

        Raises:
            DirectiveProcessingError: If the transformation fails
        """
        pass

    def invalid(self, message: str, target_path: str) -> ConfigurationError:
        """Build the error raised for a malformed directive value."""
        return ConfigurationError(
            message, directive=self.name, schema_path=target_path or "<root>"
        )

    def require_string(self, value: Any, target_path: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise self.invalid(
                f"{self.name} must be a non-empty string, got {value!r}", target_path
            )
        return value.strip()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


class PassthroughHandler(DirectiveHandler):
    """Handler whose directive configures later stages and leaves data alone."""

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        return DirectiveOutcome(data, {"applied": False, "value": directive.value})
