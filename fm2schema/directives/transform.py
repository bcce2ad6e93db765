"""Handlers that reshape collected data: array flattening and JMESPath filtering."""

import re
from typing import Any, ClassVar

import jmespath
from jmespath.exceptions import JMESPathError

from ..core.exceptions import DirectiveProcessingError
from .base import Directive, DirectiveContext, DirectiveHandler, DirectiveOutcome
from .kinds import PHASE_FILTERING, PHASE_FLATTENING, DirectiveKind
from .paths import get_path, set_path
from .structural import collection_target


def flatten_deep(values: list[Any]) -> list[Any]:
    """Flatten arbitrarily nested lists, keeping element order."""
    flattened: list[Any] = []
    stack: list[Any] = [iter(values)]
    while stack:
        for value in stack[-1]:
            if isinstance(value, list):
                stack.append(iter(value))
                break
            flattened.append(value)
        else:
            stack.pop()
    return flattened


def array_depth(value: Any) -> int:
    """Nesting depth of lists; a flat list has depth 1."""
    if not isinstance(value, list):
        return 0
    depth = 1
    frontier = [item for item in value if isinstance(item, list)]
    while frontier:
        depth += 1
        frontier = [inner for item in frontier for inner in item if isinstance(inner, list)]
    return depth


class FlattenArraysHandler(DirectiveHandler):
    """Flattens nested arrays found at a property path."""

    kind = DirectiveKind.FLATTEN_ARRAYS
    priority = PHASE_FLATTENING
    item_scoped = True

    SEGMENT: ClassVar[re.Pattern[str]] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*$")

    def validate_value(self, value: Any, target_path: str) -> str:
        path = self.require_string(value, target_path)
        if path.startswith(".") or path.endswith("."):
            raise self.invalid(
                f"{self.name} path '{path}' must not start or end with a dot", target_path
            )
        if ".." in path:
            raise self.invalid(
                f"{self.name} path '{path}' must not contain empty segments", target_path
            )
        if re.search(r"[/\[\]\s]", path):
            raise self.invalid(
                f"{self.name} path '{path}' must not contain '/', brackets or whitespace",
                target_path,
            )
        for segment in path.split("."):
            if not self.SEGMENT.match(segment):
                raise self.invalid(
                    f"{self.name} path segment '{segment}' is not a valid property name",
                    target_path,
                )
        return path

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        path = directive.value
        target = get_path(data, path) if isinstance(data, dict) else None
        if not isinstance(target, list):
            return DirectiveOutcome(
                data,
                {
                    "flattening_applied": False,
                    "target_path": path,
                    "original_depth": 0,
                    "final_depth": 0,
                    "items_processed": 0,
                },
            )

        original_depth = array_depth(target)
        flattened = flatten_deep(target)
        set_path(data, path, flattened)
        final_depth = array_depth(flattened)

        return DirectiveOutcome(
            data,
            {
                "flattening_applied": original_depth != final_depth,
                "target_path": path,
                "original_depth": original_depth,
                "final_depth": final_depth,
                "items_processed": len(flattened),
            },
        )


class JMESPathFilterHandler(DirectiveHandler):
    """Filters or reshapes the collection with a JMESPath expression."""

    kind = DirectiveKind.JMESPATH_FILTER
    priority = PHASE_FILTERING
    dependencies = (DirectiveKind.FRONTMATTER_PART,)

    def validate_value(self, value: Any, target_path: str) -> str:
        expression = self.require_string(value, target_path)
        try:
            jmespath.compile(expression)
        except JMESPathError as e:
            raise self.invalid(
                f"Invalid JMESPath expression '{expression}': {e}", target_path
            ) from e
        return expression

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        path = collection_target(data, directive, context)
        collection = get_path(data, path) if path else None
        if not isinstance(collection, list):
            return DirectiveOutcome(
                data, {"expression": directive.value, "applied": False}
            )

        source = collection
        if collection and all(isinstance(item, list) for item in collection):
            source = flatten_deep(collection)

        try:
            result = jmespath.compile(directive.value).search(source)
        except JMESPathError as e:
            raise DirectiveProcessingError(
                self.name, f"Evaluating '{directive.value}' failed: {e}", e
            ) from e

        if result is None:
            result = []
        if not isinstance(result, list):
            raise DirectiveProcessingError(
                self.name,
                f"Expression '{directive.value}' must produce an array, "
                f"got {type(result).__name__}",
            )

        set_path(data, path, result)
        return DirectiveOutcome(
            data,
            {
                "expression": directive.value,
                "applied": True,
                "original_size": len(source),
                "filtered_size": len(result),
            },
        )
