"""Narrow placeholder substitution over templates.

Structured templates (JSON or YAML) are parsed into a tree first. A string
leaf that is exactly one placeholder, ``{path}`` or ``{{path}}``, is replaced
by the typed value at ``path``; placeholders embedded in longer strings are
interpolated as text. An empty array at the collection's position is filled
with the collected items. Text templates (Markdown, XML) interpolate
``{{path}}`` only. Placeholders that resolve to nothing are left as written.

A ``{@items}`` marker makes the template a container for the collection: a
structured leaf equal to the marker becomes the item list, a list element
equal to it is replaced by the items in place, and in text templates it is
replaced by the items as JSON. With ``x-template-items`` the marker is filled
from that collection and the container is rendered once.
"""

import copy
import json
import re
from dataclasses import dataclass
from typing import Any

import yaml

from ..core.exceptions import RenderError, StructureValidationError
from ..core.logging import get_logger
from ..directives.paths import MISSING, PathSyntaxError, parse_path, resolve
from ..structure.matcher import StrictStructureMatcher
from .resolution import ResolvedTemplateConfiguration

logger = get_logger(__name__)

STRUCTURED_FORMATS = ("json", "yaml")
ITEMS_MARKER = "{@items}"

_WHOLE_PLACEHOLDER = re.compile(r"^\s*\{\{?\s*(?P<path>[^{}\s]+)\s*\}?\}\s*$")
_INLINE_PLACEHOLDER = re.compile(r"\{\{\s*(?P<path>[^{}\s]+)\s*\}\}")


@dataclass(frozen=True)
class RenderedOutput:
    """Rendered template output before serialization."""

    value: Any
    output_format: str
    structured: bool


class TemplateRenderer:
    """Renders resolved templates against aggregated data."""

    def __init__(self, strict_structure: bool = False, matcher: StrictStructureMatcher | None = None):
        self.strict_structure = strict_structure
        self.matcher = matcher or StrictStructureMatcher()

    def render(
        self,
        template: ResolvedTemplateConfiguration,
        data: dict[str, Any],
        collection_path: str | None = None,
        schema: dict[str, Any] | None = None,
    ) -> RenderedOutput:
        """Render a template.

        Args:
            template: Resolved template content and output format
            data: Aggregated data to substitute from
            collection_path: Position of the collected items in ``data``
            schema: Schema definition, required for strict structure checks

        Raises:
            RenderError: If a structured template cannot be parsed
            StructureValidationError: If strict checks find misaligned shapes
        """
        structured = template.output_format in STRUCTURED_FORMATS
        content = template.main_template_content

        tree: Any = MISSING
        if structured:
            tree = self.parse_structured(content, template.output_format)
            if tree is MISSING:
                logger.warning(
                    "Template is not structured; rendering as text",
                    output_format=template.output_format,
                )
                structured = False

        container = ITEMS_MARKER in content
        if template.renders_per_item and not container:
            items = self._items(data, template.items_collection, collection_path)
            rendered_items = [
                self._render_one(tree, content, structured, [item, data], None, [])
                for item in items
            ]
            value: Any = rendered_items if structured else "\n\n".join(rendered_items)
            return RenderedOutput(value, template.output_format, structured)

        items_name = template.items_collection if container else None
        collected = self._items(data, items_name, collection_path)

        if structured and self.strict_structure:
            self.verify_alignment(data, schema, self.expand_items_markers(tree, collected))

        value = self._render_one(tree, content, structured, [data], collection_path, collected)
        return RenderedOutput(value, template.output_format, structured)

    def verify_alignment(self, data: Any, schema: dict[str, Any] | None, tree: Any) -> None:
        """Require data, schema and template to share one shape.

        Raises:
            StructureValidationError: Naming the mismatching pair
        """
        if schema is None:
            raise StructureValidationError("Strict structure checks need the schema")
        result = self.matcher.validate_structural_alignment(data, schema, tree)
        if not result.is_valid:
            first = result.errors[0]
            raise StructureValidationError(
                f"{first.message} at {first.path}", errors=result.errors
            )

    @staticmethod
    def parse_structured(content: str, output_format: str) -> Any:
        """Parse template text as JSON or YAML; MISSING if it is not structured."""
        try:
            if output_format == "json":
                return json.loads(content)
            parsed = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError):
            return MISSING
        if not isinstance(parsed, (dict, list)):
            return MISSING
        return parsed

    def _render_one(
        self,
        tree: Any,
        content: str,
        structured: bool,
        scopes: list[Any],
        collection_path: str | None,
        collected: list[Any],
    ) -> Any:
        if structured:
            return self.substitute_tree(tree, scopes, collection_path, collected)
        if ITEMS_MARKER in content:
            content = content.replace(
                ITEMS_MARKER, json.dumps(collected, ensure_ascii=False, default=str)
            )
        return self.interpolate_text(content, scopes)

    @staticmethod
    def is_items_marker(node: Any) -> bool:
        return isinstance(node, str) and node.strip() == ITEMS_MARKER

    def expand_items_markers(self, node: Any, collected: list[Any]) -> Any:
        """Copy of a template tree with only the ``{@items}`` markers filled."""
        if self.is_items_marker(node):
            return copy.deepcopy(collected)
        if isinstance(node, dict):
            return {
                key: self.expand_items_markers(value, collected)
                for key, value in node.items()
            }
        if isinstance(node, list):
            expanded: list[Any] = []
            for item in node:
                if self.is_items_marker(item):
                    expanded.extend(copy.deepcopy(collected))
                else:
                    expanded.append(self.expand_items_markers(item, collected))
            return expanded
        return node

    def substitute_tree(
        self,
        node: Any,
        scopes: list[Any],
        collection_path: str | None = None,
        collected: list[Any] | None = None,
        path: str = "",
    ) -> Any:
        """Replace placeholders throughout a parsed template tree."""
        if isinstance(node, dict):
            return {
                key: self.substitute_tree(
                    value,
                    scopes,
                    collection_path,
                    collected,
                    f"{path}.{key}" if path else str(key),
                )
                for key, value in node.items()
            }
        if isinstance(node, list):
            if not node and collection_path and path == collection_path:
                return list(collected or [])
            substituted: list[Any] = []
            for item in node:
                if self.is_items_marker(item):
                    substituted.extend(copy.deepcopy(collected or []))
                else:
                    substituted.append(
                        self.substitute_tree(item, scopes, collection_path, collected, path)
                    )
            return substituted
        if self.is_items_marker(node):
            return copy.deepcopy(collected or [])
        if isinstance(node, str):
            whole = _WHOLE_PLACEHOLDER.match(node)
            if whole is not None:
                value = self.lookup(whole.group("path"), scopes)
                return node if value is MISSING else value
            return self.interpolate_text(node, scopes)
        return node

    def interpolate_text(self, text: str, scopes: list[Any]) -> str:
        """Replace ``{{path}}`` occurrences with the value's text form."""

        def replace(match: re.Match[str]) -> str:
            value = self.lookup(match.group("path"), scopes)
            if value is MISSING:
                return match.group(0)
            return self.to_text(value)

        return _INLINE_PLACEHOLDER.sub(replace, text)

    @staticmethod
    def lookup(path: str, scopes: list[Any]) -> Any:
        """Resolve a path against each scope in turn; MISSING if none has it."""
        try:
            segments = parse_path(path)
        except PathSyntaxError:
            return MISSING
        expands = any(None in segment.selectors for segment in segments)
        for scope in scopes:
            values = resolve(scope, segments)
            if values:
                return values if expands else values[0]
        return MISSING

    @staticmethod
    def to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, list):
            if all(not isinstance(v, (dict, list)) for v in value):
                return ", ".join(TemplateRenderer.to_text(v) for v in value)
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        return str(value)

    @staticmethod
    def _items(
        data: dict[str, Any], name: str | None, collection_path: str | None
    ) -> list[Any]:
        candidates = []
        if name:
            candidates.append(name)
            if collection_path and collection_path.split(".")[-1] == name:
                candidates.append(collection_path)
        elif collection_path:
            candidates.append(collection_path)

        for candidate in candidates:
            values = resolve(data, parse_path(candidate))
            if values and isinstance(values[0], list):
                return values[0]
        if name:
            raise RenderError(f"x-template-items collection '{name}' not found in data")
        return []
