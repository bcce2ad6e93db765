"""Typed access to a parsed JSON Schema annotated with x-* directives.

``SchemaDocument`` wraps the raw schema tree and provides the traversals the
pipeline needs: directive lookup by key, frontmatter-part discovery and
property navigation. All traversals use an explicit stack and track visited
nodes, so shared or self-referencing subtrees cannot cause runaway recursion.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

FRONTMATTER_PART = "x-frontmatter-part"


@dataclass(frozen=True)
class SchemaNode:
    """A schema node reached during traversal.

    ``path`` is the dotted property path from the root; array item schemas
    append ``[]`` to the path of the array property.
    """

    path: str
    definition: dict[str, Any]
    depth: int

    @property
    def properties(self) -> dict[str, Any]:
        props = self.definition.get("properties")
        return props if isinstance(props, dict) else {}

    @property
    def items(self) -> dict[str, Any] | None:
        items = self.definition.get("items")
        return items if isinstance(items, dict) else None

    @property
    def type(self) -> Any:
        return self.definition.get("type")


def join_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


class SchemaDocument:
    """A JSON Schema tree plus the location it was loaded from."""

    def __init__(self, definition: dict[str, Any], source: str | Path | None = None):
        if not isinstance(definition, dict):
            raise TypeError("Schema definition must be a mapping")
        self.definition = definition
        self.source = Path(source) if source is not None else None

    @property
    def base_dir(self) -> Path | None:
        """Directory that relative template paths resolve against."""
        return self.source.parent if self.source is not None else None

    @property
    def root(self) -> SchemaNode:
        return SchemaNode(path="", definition=self.definition, depth=0)

    def iter_property_nodes(self) -> Iterator[SchemaNode]:
        """Walk property and item schemas depth-first in declaration order."""
        stack: list[SchemaNode] = [self.root]
        visited: set[int] = set()

        while stack:
            node = stack.pop()
            if id(node.definition) in visited:
                continue
            visited.add(id(node.definition))
            yield node

            children: list[SchemaNode] = []
            for key, child in node.properties.items():
                if isinstance(child, dict):
                    children.append(
                        SchemaNode(join_path(node.path, key), child, node.depth + 1)
                    )
            items = node.items
            if items is not None:
                children.append(SchemaNode(f"{node.path}[]", items, node.depth + 1))

            # Reverse so the first declared child is visited first
            stack.extend(reversed(children))

    def find_directive(self, name: str) -> Any | None:
        """Return the first value stored under ``name`` anywhere in the tree.

        The search is depth-first over every mapping and list in the schema,
        not only ``properties``, and returns the first match found.
        """
        stack: list[Any] = [self.definition]
        visited: set[int] = set()

        while stack:
            current = stack.pop()
            if id(current) in visited:
                continue
            visited.add(id(current))

            if isinstance(current, dict):
                if name in current:
                    return current[name]
                stack.extend(
                    reversed([v for v in current.values() if isinstance(v, (dict, list))])
                )
            elif isinstance(current, list):
                stack.extend(
                    reversed([v for v in current if isinstance(v, (dict, list))])
                )
        return None

    def find_frontmatter_part(self) -> SchemaNode | None:
        """Locate the schema node that receives per-document front matter.

        A property carrying ``x-frontmatter-part: true`` is the target. A
        string value names the target path directly, relative to the node
        that declares it.
        """
        for node in self.iter_property_nodes():
            marker = node.definition.get(FRONTMATTER_PART)
            if marker is True:
                return node
            if isinstance(marker, str) and marker.strip():
                target = join_path(node.path, marker.strip())
                resolved = self.get_node(target)
                if resolved is not None:
                    return resolved
                return SchemaNode(target, {"type": "array"}, target.count(".") + 1)
        return None

    def find_frontmatter_part_path(self) -> str | None:
        node = self.find_frontmatter_part()
        return node.path if node is not None else None

    def get_node(self, path: str) -> SchemaNode | None:
        """Navigate ``properties`` along a dotted path."""
        if not path:
            return self.root
        current: dict[str, Any] = self.definition
        depth = 0
        for part in path.split("."):
            props = current.get("properties")
            if not isinstance(props, dict) or not isinstance(props.get(part), dict):
                return None
            current = props[part]
            depth += 1
        return SchemaNode(path, current, depth)

    def frontmatter_item_schema(self) -> dict[str, Any] | None:
        """Schema describing one document's front matter, if declared."""
        node = self.find_frontmatter_part()
        if node is None:
            return None
        return node.items

    def property_defaults(self) -> dict[str, Any]:
        """Top-level property defaults declared with ``default``."""
        defaults: dict[str, Any] = {}
        for key, prop in self.root.properties.items():
            if isinstance(prop, dict) and "default" in prop:
                defaults[key] = prop["default"]
        return defaults

    def __repr__(self) -> str:
        return f"SchemaDocument(source={str(self.source) if self.source else None!r})"
