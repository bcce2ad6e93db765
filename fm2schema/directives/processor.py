"""Applies a schema's directives to aggregated front-matter data.

Directives are discovered by walking the schema's property tree, then run
in registry processing order. Within one directive kind, schema declaration
order is kept. Directives declared inside the collection's item schema run
once per collected item when their handler supports it.
"""

import copy
from dataclasses import dataclass, field, replace
from typing import Any

from ..core.exceptions import MissingHandlerError
from ..core.logging import get_logger
from ..schema.document import SchemaDocument
from .base import Directive, DirectiveContext, DirectiveHandler
from .paths import PathResolver, get_path
from .registry import DirectiveRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveredDirective:
    """A present directive and the schema node path that declared it."""

    directive: Directive
    schema_path: str


@dataclass
class DirectiveApplication:
    """Record of one handler invocation."""

    directive: str
    schema_path: str
    scope: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DirectiveRun:
    """Result of applying all directives."""

    data: dict[str, Any]
    applications: list[DirectiveApplication] = field(default_factory=list)
    skipped: list[DiscoveredDirective] = field(default_factory=list)

    def metadata_for(self, directive: str) -> list[dict[str, Any]]:
        return [a.metadata for a in self.applications if a.directive == directive]


class SchemaDirectiveProcessor:
    """Discovers and applies directives using a registry."""

    def __init__(self, registry: DirectiveRegistry, resolver: PathResolver | None = None):
        self.registry = registry
        self.resolver = resolver or PathResolver()

    def discover(self, schema: SchemaDocument) -> list[DiscoveredDirective]:
        """Extract every present directive from the schema.

        Raises:
            ConfigurationError: If any present directive is malformed
        """
        found = []
        for node in schema.iter_property_nodes():
            for directive in self.registry.extract_directives(node.definition, node.path):
                found.append(DiscoveredDirective(directive, node.path))
        return found

    def ordered(self, discovered: list[DiscoveredDirective]) -> list[DiscoveredDirective]:
        """Sort discovered directives into registry processing order."""
        rank = {
            handler.kind: index
            for index, handler in enumerate(self.registry.get_processing_order())
        }
        return sorted(discovered, key=lambda d: rank[d.directive.kind])

    def apply(
        self,
        schema: SchemaDocument,
        data: dict[str, Any],
        collection_path: str | None,
        sources: list[str] | None = None,
    ) -> DirectiveRun:
        """Apply every directive in the schema to a copy of ``data``.

        Args:
            schema: Schema declaring the directives
            data: Aggregated data with the collection at ``collection_path``
            collection_path: Where collected items live in ``data``
            sources: Document path of each collected item, in order

        Raises:
            ConfigurationError: If a directive is malformed or ordering fails
            DirectiveProcessingError: If a handler fails
        """
        working = copy.deepcopy(data)
        context = DirectiveContext(
            schema=schema,
            collection_path=collection_path,
            items=self._collection(working, collection_path),
            sources=list(sources or []),
            resolver=self.resolver,
        )
        run = DirectiveRun(data=working)
        item_prefix = f"{collection_path}[]" if collection_path else None

        for discovered in self.ordered(self.discover(schema)):
            directive = discovered.directive
            handler = self.registry.get(directive.kind)
            if handler is None:
                raise MissingHandlerError([directive.kind.value])

            in_items = item_prefix is not None and (
                discovered.schema_path == item_prefix
                or discovered.schema_path.startswith(item_prefix + ".")
            )
            if in_items and handler.item_scoped:
                relative = discovered.schema_path[len(item_prefix or "") :].lstrip(".")
                self._apply_per_item(handler, replace(directive, target_path=relative), discovered, context, run)
                continue

            if handler.writes_target and "[]" in directive.target_path:
                logger.warning(
                    "Directive target inside a nested array is not supported",
                    directive=directive.name,
                    schema_path=discovered.schema_path,
                )
                run.skipped.append(discovered)
                continue

            count_before = len(context.items)
            outcome = handler.process(working, directive, context)
            run.applications.append(
                DirectiveApplication(directive.name, discovered.schema_path, "aggregate", outcome.metadata)
            )
            self._refresh(context, working, outcome.metadata, count_before)

        return run

    def _apply_per_item(
        self,
        handler: DirectiveHandler,
        directive: Directive,
        discovered: DiscoveredDirective,
        context: DirectiveContext,
        run: DirectiveRun,
    ) -> None:
        if handler.writes_target and (not directive.target_path or "[]" in directive.target_path):
            logger.warning(
                "Directive target inside a nested array is not supported",
                directive=directive.name,
                schema_path=discovered.schema_path,
            )
            run.skipped.append(discovered)
            return

        for item in context.items:
            if not isinstance(item, dict):
                continue
            item_context = replace(context, items=[item], sources=[])
            outcome = handler.process(item, directive, item_context)
            run.applications.append(
                DirectiveApplication(directive.name, discovered.schema_path, "item", outcome.metadata)
            )

    @staticmethod
    def _collection(data: dict[str, Any], collection_path: str | None) -> list[Any]:
        if not collection_path:
            return []
        value = get_path(data, collection_path)
        return value if isinstance(value, list) else []

    def _refresh(
        self,
        context: DirectiveContext,
        data: dict[str, Any],
        metadata: dict[str, Any],
        count_before: int,
    ) -> None:
        context.items = self._collection(data, context.collection_path)
        if "sources" in metadata:
            context.sources = list(metadata["sources"])
        elif len(context.items) != count_before:
            # Membership changed without source tracking
            context.sources = []
