"""Comparison conditions for x-derived-count-where.

A condition compares one field of an item against a literal:

    status === 'active'
    type !== "bug"
    priority > 2
    isActive === true
    owner === null
"""

import operator
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from .paths import MISSING, PathSyntaxError, parse_path, resolve


class ConditionSyntaxError(ValueError):
    """A condition string could not be parsed."""

    pass


def _ordered(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(left: Any, right: Any) -> bool:
        if isinstance(left, bool) or isinstance(right, bool):
            return False
        if isinstance(left, (int, float)) and isinstance(right, (int, float)):
            return op(left, right)
        if isinstance(left, str) and isinstance(right, str):
            return op(left, right)
        return False

    return compare


def _equal(left: Any, right: Any) -> bool:
    # Keep True distinct from 1
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


@dataclass(frozen=True)
class Condition:
    """A parsed ``field operator literal`` comparison."""

    field: str
    operator: str
    literal: Any

    OPERATORS: ClassVar[dict[str, Callable[[Any, Any], bool]]] = {
        "===": _equal,
        "==": _equal,
        "!==": lambda left, right: not _equal(left, right),
        "!=": lambda left, right: not _equal(left, right),
        ">=": _ordered(operator.ge),
        "<=": _ordered(operator.le),
        ">": _ordered(operator.gt),
        "<": _ordered(operator.lt),
    }

    def matches(self, item: Any) -> bool:
        """Check an item. A missing field only satisfies inequality."""
        values = resolve(item, parse_path(self.field))
        value = values[0] if values else MISSING
        if value is MISSING:
            return self.operator in ("!==", "!=")
        return self.OPERATORS[self.operator](value, self.literal)


_CONDITION = re.compile(
    r"^\s*(?P<field>[A-Za-z_$][\w.$\[\]-]*)\s*"
    r"(?P<op>===|!==|==|!=|>=|<=|>|<)\s*"
    r"(?P<literal>.+?)\s*$"
)


def parse_literal(text: str) -> Any:
    """Parse a quoted string, number, boolean or null literal."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError as e:
        raise ConditionSyntaxError(f"Invalid literal '{text}'") from e


def parse_condition(text: str) -> Condition:
    """Parse a condition string.

    Raises:
        ConditionSyntaxError: If the condition is malformed
    """
    match = _CONDITION.match(text)
    if match is None:
        raise ConditionSyntaxError(
            f"Invalid condition '{text}'; expected 'field <op> value'"
        )
    field = match.group("field")
    try:
        parse_path(field)
    except PathSyntaxError as e:
        raise ConditionSyntaxError(str(e)) from e
    return Condition(
        field=field,
        operator=match.group("op"),
        literal=parse_literal(match.group("literal")),
    )


def count_where(items: list[Any], condition: Condition) -> int:
    return sum(1 for item in items if condition.matches(item))
