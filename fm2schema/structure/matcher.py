"""Strict structural comparison of data, schema and template.

Before any template substitution, the collected data, the schema describing
it and the template rendering it must have exactly the same shape: the same
object keys, homogeneous arrays with equal element shapes, and the same
primitive kinds at every position. Primitive values never matter.

Each analyzer returns a ``ValidationResult`` whose ``value`` holds the
``StructureNode`` tree when analysis succeeded.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from ..validation.errors import ValidationError, ValidationResult


class NodeKind(str, Enum):
    """Shape category of a structure node."""

    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


@dataclass(frozen=True, eq=False)
class StructureNode:
    """Recursive shape descriptor.

    Objects carry ``children`` keyed by property name; arrays carry an
    ``element_type``. Use ``structures_equal`` to compare nodes, since
    ``path`` is informational and not part of the shape.
    """

    path: str
    kind: NodeKind
    children: dict[str, "StructureNode"] | None = None
    element_type: "StructureNode | None" = None


def _child_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def _element_path(parent: str) -> str:
    return f"{parent}[]"


def structures_equal(a: StructureNode | None, b: StructureNode | None) -> bool:
    """Deep shape equality that ignores paths and primitive values."""
    return find_first_mismatch(a, b) is None


def find_first_mismatch(
    a: StructureNode | None, b: StructureNode | None
) -> str | None:
    """Describe the first position where two structures differ.

    Returns:
        None if the structures are equal, otherwise a short description
        naming the path of the left-hand node
    """
    if a is None and b is None:
        return None
    if a is None or b is None:
        path = a.path if a is not None else b.path
        return f"'{path or '<root>'}': element type present on one side only"

    if a.kind is not b.kind:
        return f"'{a.path or '<root>'}': {a.kind.value} != {b.kind.value}"

    if a.kind is NodeKind.OBJECT:
        a_children = a.children or {}
        b_children = b.children or {}
        if a_children.keys() != b_children.keys():
            missing = sorted(b_children.keys() - a_children.keys())
            extra = sorted(a_children.keys() - b_children.keys())
            details = []
            if extra:
                details.append(f"only on left: {', '.join(extra)}")
            if missing:
                details.append(f"only on right: {', '.join(missing)}")
            return f"'{a.path or '<root>'}': keys differ ({'; '.join(details)})"
        for key, child in a_children.items():
            mismatch = find_first_mismatch(child, b_children[key])
            if mismatch is not None:
                return mismatch
        return None

    if a.kind is NodeKind.ARRAY:
        return find_first_mismatch(a.element_type, b.element_type)

    return None


class StrictStructureMatcher:
    """Analyzes and compares the shapes of data, schemas and templates."""

    SUPPORTED_SCHEMA_TYPES: ClassVar[dict[str, NodeKind]] = {
        "string": NodeKind.STRING,
        "number": NodeKind.NUMBER,
        "boolean": NodeKind.BOOLEAN,
        "null": NodeKind.NULL,
        "object": NodeKind.OBJECT,
        "array": NodeKind.ARRAY,
    }

    def analyze_yaml_structure(self, value: Any, path: str = "") -> ValidationResult:
        """Analyze the shape of a parsed YAML/JSON value.

        Args:
            value: Parsed data
            path: Path assigned to the root node

        Returns:
            ValidationResult with the StructureNode as ``value``
        """
        errors: list[ValidationError] = []
        node = self._analyze_value(value, path, errors)
        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(node)

    def analyze_template_structure(
        self, value: Any, path: str = ""
    ) -> ValidationResult:
        """Analyze the shape of a parsed template.

        Templates are plain data trees, so they follow the same rules as
        collected data.
        """
        return self.analyze_yaml_structure(value, path)

    def analyze_schema_structure(
        self, schema: Any, path: str = ""
    ) -> ValidationResult:
        """Analyze the shape a JSON Schema describes.

        Reads ``type``, ``properties`` and ``items``; literal values and all
        other keywords are ignored.
        """
        errors: list[ValidationError] = []
        node = self._analyze_schema(schema, path, errors)
        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(node)

    def structures_equal(self, a: StructureNode, b: StructureNode) -> bool:
        return structures_equal(a, b)

    def validate_structural_alignment(
        self, data: Any, schema: Any, template: Any
    ) -> ValidationResult:
        """Require data, schema and template to share one exact shape.

        Returns:
            A passing ValidationResult, or a failing one whose error names
            the mismatching pair and the first differing path
        """
        data_result = self.analyze_yaml_structure(data)
        if not data_result.is_valid:
            return data_result

        schema_result = self.analyze_schema_structure(schema)
        if not schema_result.is_valid:
            return schema_result

        template_result = self.analyze_template_structure(template)
        if not template_result.is_valid:
            return template_result

        data_node = data_result.value
        schema_node = schema_result.value
        template_node = template_result.value

        mismatch = find_first_mismatch(data_node, schema_node)
        if mismatch is not None:
            return ValidationResult.failure(
                [
                    ValidationError(
                        type="schema_validation_failed",
                        message="YAML structure does not match Schema",
                        path=mismatch,
                        help="Data and schema must declare the same keys, "
                        "array element shapes and primitive kinds",
                    )
                ]
            )

        mismatch = find_first_mismatch(schema_node, template_node)
        if mismatch is not None:
            return ValidationResult.failure(
                [
                    ValidationError(
                        type="template_mapping_failed",
                        message="Schema structure does not match Template",
                        path=mismatch,
                        help="Update the template so every schema property "
                        "appears with the same shape",
                    )
                ]
            )

        return ValidationResult.success(True)

    def _analyze_value(
        self, value: Any, path: str, errors: list[ValidationError]
    ) -> StructureNode | None:
        if value is None:
            return StructureNode(path, NodeKind.NULL)
        # bool is a subclass of int, so it must be checked first
        if isinstance(value, bool):
            return StructureNode(path, NodeKind.BOOLEAN)
        if isinstance(value, (int, float)):
            return StructureNode(path, NodeKind.NUMBER)
        if isinstance(value, str):
            return StructureNode(path, NodeKind.STRING)

        if isinstance(value, (list, tuple)):
            element_path = _element_path(path)
            if not value:
                return StructureNode(
                    path,
                    NodeKind.ARRAY,
                    element_type=StructureNode(element_path, NodeKind.NULL),
                )

            first = self._analyze_value(value[0], element_path, errors)
            if first is None:
                return None
            for index, item in enumerate(value[1:], start=1):
                item_node = self._analyze_value(item, element_path, errors)
                if item_node is None:
                    return None
                if not structures_equal(first, item_node):
                    errors.append(
                        ValidationError(
                            type="inconsistent_array_structure",
                            message=(
                                f"Array at '{path or '<root>'}' has inconsistent "
                                f"structures: element {index} differs from element 0"
                            ),
                            path=f"{path}[{index}]",
                            help="Every element of an array must have the same shape",
                        )
                    )
                    return None
            return StructureNode(path, NodeKind.ARRAY, element_type=first)

        if isinstance(value, dict):
            children: dict[str, StructureNode] = {}
            for key, child in value.items():
                child_node = self._analyze_value(
                    child, _child_path(path, str(key)), errors
                )
                if child_node is None:
                    return None
                children[str(key)] = child_node
            return StructureNode(path, NodeKind.OBJECT, children=children)

        errors.append(
            ValidationError(
                type="unsupported_value",
                message=f"Unsupported value type {type(value).__name__}",
                path=path or "<root>",
            )
        )
        return None

    def _analyze_schema(
        self, schema: Any, path: str, errors: list[ValidationError]
    ) -> StructureNode | None:
        if not isinstance(schema, dict):
            errors.append(
                ValidationError(
                    type="invalid_schema",
                    message="Schema must be an object",
                    path=path or "<root>",
                )
            )
            return None

        schema_type = schema.get("type")
        kind = (
            self.SUPPORTED_SCHEMA_TYPES.get(schema_type)
            if isinstance(schema_type, str)
            else None
        )
        if kind is None:
            errors.append(
                ValidationError(
                    type="invalid_schema",
                    message=f"Unsupported schema type: {schema_type}",
                    path=path or "<root>",
                    help=f"Use one of: {', '.join(self.SUPPORTED_SCHEMA_TYPES)}",
                )
            )
            return None

        if kind is NodeKind.OBJECT:
            properties = schema.get("properties")
            children: dict[str, StructureNode] = {}
            if isinstance(properties, dict):
                for key, child_schema in properties.items():
                    child = self._analyze_schema(
                        child_schema, _child_path(path, key), errors
                    )
                    if child is None:
                        return None
                    children[key] = child
            return StructureNode(path, NodeKind.OBJECT, children=children)

        if kind is NodeKind.ARRAY:
            element_path = _element_path(path)
            items = schema.get("items")
            if items is None:
                element = StructureNode(element_path, NodeKind.NULL)
            else:
                element = self._analyze_schema(items, element_path, errors)
                if element is None:
                    return None
            return StructureNode(path, NodeKind.ARRAY, element_type=element)

        return StructureNode(path, kind)
