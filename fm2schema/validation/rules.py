"""Front-matter validation rules derived from the schema.

The schema's frontmatter-part item schema describes one document's front
matter. Its properties become ``ValidationRule`` entries (type, required,
enum) which the ``FrontmatterValidator`` checks per document.
"""

import re
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..core.exceptions import ConfigurationError
from ..directives.paths import PathResolver
from ..schema.document import SchemaDocument
from ..structure.types import ProcessingHints
from .errors import ValidationError, ValidationResult, ValidationWarning

JSON_TYPES = ("string", "number", "integer", "boolean", "array", "object", "null")


@dataclass(frozen=True)
class ValidationRule:
    """One field constraint. ``kinds`` empty means any type."""

    path: str
    kinds: tuple[str, ...] = ()
    required: bool = False
    enum: tuple[Any, ...] | None = None
    pattern: str | None = None


@dataclass(frozen=True)
class ValidationRules:
    """An ordered set of rules, at most one per path."""

    rules: tuple[ValidationRule, ...] = ()

    @classmethod
    def empty(cls) -> "ValidationRules":
        return cls()

    @property
    def required_paths(self) -> list[str]:
        return [rule.path for rule in self.rules if rule.required]

    @property
    def top_level_fields(self) -> set[str]:
        return {rule.path.split(".", 1)[0] for rule in self.rules}

    def get(self, path: str) -> ValidationRule | None:
        for rule in self.rules:
            if rule.path == path:
                return rule
        return None

    def merged_with(self, other: "ValidationRules") -> "ValidationRules":
        """Combine rule sets; rules in ``other`` replace rules for the same path."""
        replaced = {rule.path for rule in other.rules}
        kept = [rule for rule in self.rules if rule.path not in replaced]
        return ValidationRules(tuple(kept) + other.rules)

    def loosened(self) -> "ValidationRules":
        """Same rules with nothing required."""
        return ValidationRules(
            tuple(
                ValidationRule(r.path, r.kinds, False, r.enum, r.pattern) for r in self.rules
            )
        )

    def __len__(self) -> int:
        return len(self.rules)


def rules_from_schema(item_schema: dict[str, Any], prefix: str = "") -> ValidationRules:
    """Derive rules from an object schema, descending into nested objects.

    Raises:
        ConfigurationError: If the schema is malformed
    """
    rules: list[ValidationRule] = []
    # Nested fields are only required when every enclosing object is required
    stack: list[tuple[str, dict[str, Any], bool]] = [(prefix, item_schema, True)]

    while stack:
        base, node, enclosing_required = stack.pop()
        properties = node.get("properties", {})
        if not isinstance(properties, dict):
            raise ConfigurationError(
                "'properties' must be an object", schema_path=base or "<items>"
            )
        required = node.get("required", [])
        if not isinstance(required, list) or not all(isinstance(r, str) for r in required):
            raise ConfigurationError(
                "'required' must be a list of property names", schema_path=base or "<items>"
            )

        for key, definition in properties.items():
            path = f"{base}.{key}" if base else key
            if not isinstance(definition, dict):
                raise ConfigurationError(
                    "Property schema must be an object", schema_path=path
                )
            kinds = _kinds(definition.get("type"), path)
            enum = definition.get("enum")
            if enum is not None and not isinstance(enum, list):
                raise ConfigurationError("'enum' must be a list", schema_path=path)
            pattern = definition.get("pattern")
            if pattern is not None:
                try:
                    re.compile(pattern)
                except (re.error, TypeError) as e:
                    raise ConfigurationError(
                        f"Invalid pattern: {e}", schema_path=path, cause=e
                    ) from e
            rules.append(
                ValidationRule(
                    path=path,
                    kinds=kinds,
                    required=enclosing_required and key in required,
                    enum=tuple(enum) if enum is not None else None,
                    pattern=pattern,
                )
            )
            if kinds == ("object",) and isinstance(definition.get("properties"), dict):
                stack.append((path, definition, enclosing_required and key in required))

    return ValidationRules(tuple(rules))


def _kinds(declared: Any, path: str) -> tuple[str, ...]:
    if declared is None:
        return ()
    names = declared if isinstance(declared, list) else [declared]
    for name in names:
        if name not in JSON_TYPES:
            raise ConfigurationError(f"Unsupported type '{name}'", schema_path=path)
    return tuple(names)


class ValidationRulesAdjuster:
    """Adjusts base validation rules to a schema (pipeline stage 1).

    Rules for the frontmatter-part items replace base rules for the same
    fields. Structures that are aggregated into a registry or custom shape
    collect partial records, so their required-field rules are loosened
    unless the item schema itself declares ``required``.
    """

    def adjust(
        self,
        base: ValidationRules,
        schema: SchemaDocument,
        hints: ProcessingHints | None = None,
    ) -> ValidationRules:
        """Produce the rules documents are validated against.

        Raises:
            ConfigurationError: If the item schema is malformed
        """
        item_schema = schema.frontmatter_item_schema()
        if item_schema is None:
            return base

        derived = rules_from_schema(item_schema)
        adjusted = base.merged_with(derived)
        if hints is not None and hints.requires_aggregation and "required" not in item_schema:
            adjusted = adjusted.loosened()
        return adjusted


class FrontmatterValidator:
    """Checks one document's front matter against validation rules."""

    TYPE_CHECKS: ClassVar[dict[str, Any]] = {
        "string": lambda v: isinstance(v, str),
        "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
        "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
        "boolean": lambda v: isinstance(v, bool),
        "array": lambda v: isinstance(v, list),
        "object": lambda v: isinstance(v, dict),
        "null": lambda v: v is None,
    }

    def __init__(self, resolver: PathResolver | None = None):
        self.resolver = resolver or PathResolver()

    def validate(
        self, front_matter: dict[str, Any], rules: ValidationRules, document: str | None = None
    ) -> ValidationResult:
        """Validate front matter, collecting every error.

        Args:
            front_matter: Parsed front-matter mapping
            rules: Rules to apply
            document: Document path used in error context

        Returns:
            ValidationResult with the front matter as ``value`` when valid
        """
        result = ValidationResult(is_valid=True, value=front_matter)
        data_hash = self.resolver.data_hash(front_matter)

        for rule in rules.rules:
            values = self.resolver.extract(front_matter, rule.path, data_hash)
            if not values:
                if rule.required:
                    result.add_error(
                        ValidationError(
                            type="missing_required_field",
                            message=f"Required field '{rule.path}' is missing",
                            path=rule.path,
                            document=document,
                            help=f"Add '{rule.path}' to the document's front matter",
                        )
                    )
                continue

            value = values[0]
            if rule.kinds and not any(self.TYPE_CHECKS[k](value) for k in rule.kinds):
                result.add_error(
                    ValidationError(
                        type="invalid_field_type",
                        message=(
                            f"Field '{rule.path}' must be {' or '.join(rule.kinds)}, "
                            f"got {type(value).__name__}"
                        ),
                        path=rule.path,
                        document=document,
                    )
                )
                continue

            if rule.enum is not None and value not in rule.enum:
                result.add_error(
                    ValidationError(
                        type="invalid_enum_value",
                        message=f"Field '{rule.path}' must be one of {list(rule.enum)}",
                        path=rule.path,
                        document=document,
                    )
                )

            if rule.pattern is not None and isinstance(value, str):
                if re.search(rule.pattern, value) is None:
                    result.add_error(
                        ValidationError(
                            type="pattern_mismatch",
                            message=f"Field '{rule.path}' does not match '{rule.pattern}'",
                            path=rule.path,
                            document=document,
                        )
                    )

        declared = rules.top_level_fields
        if declared:
            for key in front_matter:
                if key not in declared:
                    result.add_warning(
                        ValidationWarning(
                            type="undeclared_field",
                            message=f"Field '{key}' is not declared by the schema",
                            path=key,
                            document=document,
                        )
                    )

        if not result.is_valid:
            result.value = None
        return result
