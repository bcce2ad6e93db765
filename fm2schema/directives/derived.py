"""Handlers that derive new properties from collected values.

All derivations read from the collected items in the context and write to
the property that declares the directive. Expressions may start with the
collection name (``commands[].c1`` for a ``tools.commands`` collection); that
prefix refers to the items themselves and is stripped before evaluation. A
bare collection name (``commands``) selects the items.
"""

import json
from typing import Any

from ..core.exceptions import DirectiveProcessingError, NoNumericValuesError
from .base import Directive, DirectiveContext, DirectiveHandler, DirectiveOutcome
from .conditions import ConditionSyntaxError, count_where, parse_condition
from .kinds import DERIVED_FLATTEN, DERIVED_UNIQUE, PHASE_DERIVATION, DirectiveKind
from .paths import PathSyntaxError, parse_path, set_path
from .transform import flatten_deep


def relative_to_collection(expression: str, collection_path: str | None) -> str:
    """Strip a leading reference to the collection from an expression."""
    text = expression.strip()
    if text.startswith("$."):
        text = text[2:]
    if not collection_path:
        return text
    for prefix in (collection_path, collection_path.split(".")[-1]):
        marker = f"{prefix}[]"
        if text in (marker, prefix):
            return ""
        if text.startswith(marker + "."):
            return text[len(marker) + 1 :]
    return text


def _dedupe_key(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return json.dumps(value, sort_keys=True, default=str)
    return (type(value).__name__, value)


def unique_stable(values: list[Any]) -> list[Any]:
    seen: set[Any] = set()
    unique = []
    for value in values:
        key = _dedupe_key(value)
        if key not in seen:
            seen.add(key)
            unique.append(value)
    return unique


class _DerivationHandler(DirectiveHandler):
    priority = PHASE_DERIVATION
    dependencies = (DirectiveKind.FRONTMATTER_PART,)
    item_scoped = True
    writes_target = True

    def validate_expression(self, value: Any, target_path: str) -> str:
        expression = self.require_string(value, target_path)
        try:
            parse_path(expression)
        except PathSyntaxError as e:
            raise self.invalid(str(e), target_path) from e
        return expression

    def source_values(self, expression: str, context: DirectiveContext) -> list[Any]:
        relative = relative_to_collection(expression, context.collection_path)
        if not relative:
            return list(context.items)
        return context.resolver.values_from_items(context.items, relative)

    def store(self, data: Any, directive: Directive, value: Any) -> None:
        if not directive.target_path:
            raise DirectiveProcessingError(
                self.name, "Directive must be declared on a property"
            )
        if not isinstance(data, dict):
            raise DirectiveProcessingError(
                self.name, f"Cannot store into {type(data).__name__}"
            )
        set_path(data, directive.target_path, value)


class DerivedFromHandler(_DerivationHandler):
    """Collects the values an expression reaches across all items.

    ``x-derived-unique: true`` removes duplicates keeping first occurrences;
    ``x-derived-flatten: true`` flattens nested lists before that.
    """

    kind = DirectiveKind.DERIVED_FROM

    def validate_value(self, value: Any, target_path: str) -> str:
        return self.validate_expression(value, target_path)

    def extract_options(self, node: dict[str, Any], target_path: str) -> dict[str, Any]:
        options = {}
        for key, option in ((DERIVED_UNIQUE, "unique"), (DERIVED_FLATTEN, "flatten")):
            flag = node.get(key, False)
            if not isinstance(flag, bool):
                raise self.invalid(f"{key} must be a boolean, got {flag!r}", target_path)
            options[option] = flag
        return options

    def extract_extension(self, node: dict[str, Any]) -> tuple[str, Any] | None:
        if not isinstance(node, dict) or self.name not in node:
            return None
        if DERIVED_UNIQUE in node or DERIVED_FLATTEN in node:
            value = {"from": node[self.name]}
            if DERIVED_UNIQUE in node:
                value["unique"] = node[DERIVED_UNIQUE]
            if DERIVED_FLATTEN in node:
                value["flatten"] = node[DERIVED_FLATTEN]
            return self.name, value
        return self.name, node[self.name]

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        values = [v for v in self.source_values(directive.value, context) if v is not None]
        if directive.options.get("flatten"):
            values = [v for v in flatten_deep(values) if v is not None]
        if directive.options.get("unique"):
            values = unique_stable(values)

        self.store(data, directive, values)
        return DirectiveOutcome(
            data,
            {
                "source": directive.value,
                "target_path": directive.target_path,
                "values_collected": len(values),
                "unique": bool(directive.options.get("unique")),
            },
        )


class DerivedCountHandler(_DerivationHandler):
    """Counts the non-null values an expression reaches."""

    kind = DirectiveKind.DERIVED_COUNT

    def validate_value(self, value: Any, target_path: str) -> str:
        return self.validate_expression(value, target_path)

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        count = sum(
            1 for v in self.source_values(directive.value, context) if v is not None
        )
        self.store(data, directive, count)
        return DirectiveOutcome(
            data, {"source": directive.value, "target_path": directive.target_path, "count": count}
        )


class DerivedAverageHandler(_DerivationHandler):
    """Averages the numeric values an expression reaches.

    Numbers and numeric strings count; booleans and other values are skipped.
    """

    kind = DirectiveKind.DERIVED_AVERAGE

    def validate_value(self, value: Any, target_path: str) -> str:
        return self.validate_expression(value, target_path)

    @staticmethod
    def as_number(value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        numbers = [
            n
            for n in (self.as_number(v) for v in self.source_values(directive.value, context))
            if n is not None
        ]
        if not numbers:
            raise NoNumericValuesError(directive.value)

        average = sum(numbers) / len(numbers)
        self.store(data, directive, average)
        return DirectiveOutcome(
            data,
            {
                "source": directive.value,
                "target_path": directive.target_path,
                "average": average,
                "values_used": len(numbers),
            },
        )


class DerivedCountWhereHandler(_DerivationHandler):
    """Counts items satisfying a condition: ``{from: <path>, where: <condition>}``."""

    kind = DirectiveKind.DERIVED_COUNT_WHERE

    def validate_value(self, value: Any, target_path: str) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self.invalid(
                f"{self.name} must be an object with 'from' and 'where', got {value!r}",
                target_path,
            )
        source = value.get("from", "$")
        where = value.get("where")
        if not isinstance(source, str):
            raise self.invalid(f"{self.name}.from must be a string", target_path)
        if not isinstance(where, str) or not where.strip():
            raise self.invalid(f"{self.name}.where must be a non-empty string", target_path)
        try:
            parse_path(source)
            condition = parse_condition(where)
        except (PathSyntaxError, ConditionSyntaxError) as e:
            raise self.invalid(str(e), target_path) from e
        return {"from": source, "where": where, "condition": condition}

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        source = directive.value["from"]
        if source.strip() in ("", "$"):
            candidates = list(context.items)
        else:
            candidates = self.source_values(source, context)

        count = count_where(candidates, directive.value["condition"])
        self.store(data, directive, count)
        return DirectiveOutcome(
            data,
            {
                "source": source,
                "condition": directive.value["where"],
                "target_path": directive.target_path,
                "count": count,
                "candidates": len(candidates),
            },
        )
