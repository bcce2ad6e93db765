"""Directive handler registry.

The registry owns one handler per directive kind and knows nothing about
what the handlers do beyond their name, priority and dependencies. It is
constructed explicitly and passed to whoever needs it; there is no
process-wide instance.
"""

from typing import Any

from ..core.exceptions import (
    CircularDependencyError,
    DuplicateHandlerError,
    MissingHandlerError,
)
from ..core.logging import get_logger
from .base import Directive, DirectiveHandler
from .derived import (
    DerivedAverageHandler,
    DerivedCountHandler,
    DerivedCountWhereHandler,
    DerivedFromHandler,
)
from .kinds import DirectiveKind
from .structural import CollectPatternHandler, FrontmatterPartHandler
from .template import TemplateFormatHandler, TemplateHandler, TemplateItemsHandler
from .transform import FlattenArraysHandler, JMESPathFilterHandler

logger = get_logger(__name__)


class DirectiveRegistry:
    """Handlers keyed by directive kind."""

    def __init__(self, handlers: list[DirectiveHandler] | None = None):
        self._handlers: dict[DirectiveKind, DirectiveHandler] = {}
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: DirectiveHandler) -> None:
        """Register a handler.

        Raises:
            DuplicateHandlerError: If a handler for the same kind exists
        """
        if handler.kind in self._handlers:
            raise DuplicateHandlerError(handler.name)
        self._handlers[handler.kind] = handler

    def get(self, kind: DirectiveKind | str) -> DirectiveHandler | None:
        if isinstance(kind, str) and not isinstance(kind, DirectiveKind):
            resolved = DirectiveKind.from_key(kind)
            if resolved is None:
                return None
            kind = resolved
        return self._handlers.get(kind)

    @property
    def handlers(self) -> list[DirectiveHandler]:
        return list(self._handlers.values())

    def __contains__(self, kind: object) -> bool:
        return kind in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def verify_complete(self) -> None:
        """Require a handler for every directive kind.

        Raises:
            MissingHandlerError: Naming every kind without a handler
        """
        missing = [kind.value for kind in DirectiveKind if kind not in self._handlers]
        if missing:
            raise MissingHandlerError(missing)

    def get_processing_order(self) -> list[DirectiveHandler]:
        """Order handlers so each runs after everything it depends on.

        Handlers are visited in ascending priority, so among handlers with
        no ordering constraint the lower priority number runs first.
        Dependencies without a registered handler are ignored.

        Raises:
            CircularDependencyError: If dependencies form a cycle
        """
        by_priority = sorted(self._handlers.values(), key=lambda h: h.priority)
        ordered: list[DirectiveHandler] = []
        visited: set[DirectiveKind] = set()
        visiting: set[DirectiveKind] = set()

        def visit(handler: DirectiveHandler) -> None:
            if handler.kind in visited:
                return
            if handler.kind in visiting:
                raise CircularDependencyError(handler.name)
            visiting.add(handler.kind)
            dependencies = [
                self._handlers[kind] for kind in handler.dependencies if kind in self._handlers
            ]
            for dependency in sorted(dependencies, key=lambda h: h.priority):
                visit(dependency)
            visiting.discard(handler.kind)
            visited.add(handler.kind)
            ordered.append(handler)

        for handler in by_priority:
            visit(handler)

        logger.debug("Directive processing order", order=[h.name for h in ordered])
        return ordered

    def extract_all_extensions(self, node: dict[str, Any]) -> dict[str, Any]:
        """Collect every directive the node declares, plus its description.

        Used when migrating directive annotations between schemas.
        """
        extensions: dict[str, Any] = {}
        if not isinstance(node, dict):
            return extensions
        for handler in self._handlers.values():
            pair = handler.extract_extension(node)
            if pair is not None:
                key, value = pair
                extensions[key] = value
        if "description" in node:
            extensions["description"] = node["description"]
        return extensions

    def extract_directives(self, node: dict[str, Any], target_path: str = "") -> list[Directive]:
        """Extract every present directive from one schema node.

        Raises:
            ConfigurationError: If a present directive is malformed
        """
        found = []
        for handler in self._handlers.values():
            directive = handler.extract_config(node, target_path)
            if directive.is_present:
                found.append(directive)
        return found


def default_handlers() -> list[DirectiveHandler]:
    return [
        FrontmatterPartHandler(),
        CollectPatternHandler(),
        FlattenArraysHandler(),
        JMESPathFilterHandler(),
        DerivedFromHandler(),
        DerivedCountHandler(),
        DerivedAverageHandler(),
        DerivedCountWhereHandler(),
        TemplateHandler(),
        TemplateItemsHandler(),
        TemplateFormatHandler(),
    ]


def create_default_registry() -> DirectiveRegistry:
    """Build a registry holding a handler for every directive kind.

    Raises:
        MissingHandlerError: If a directive kind has no handler
        CircularDependencyError: If handler dependencies form a cycle
    """
    registry = DirectiveRegistry(default_handlers())
    registry.verify_complete()
    registry.get_processing_order()
    return registry
