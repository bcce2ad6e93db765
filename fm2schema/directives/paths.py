"""Property path expressions.

Paths are dotted keys with two array forms: ``key[]`` expands every element
of a list and ``key[2]`` selects one element. A leading ``$`` or ``$.``
denotes the value the expression is evaluated against and is optional.

    authors[].name      every author's name
    tags[]              every tag
    refs[0].id          the first reference's id
"""

import re
from dataclasses import dataclass
from typing import Any

from ..cache.path_cache import PathCache

_SEGMENT = re.compile(r"^(?P<key>[^\[\]]*)(?P<suffix>(\[\d*\])*)$")
_SUFFIX = re.compile(r"\[(\d*)\]")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True)
class PathSegment:
    """One dotted component of a path.

    ``selectors`` lists the bracket suffixes in order: ``None`` expands all
    elements, an integer selects one.
    """

    key: str
    selectors: tuple[int | None, ...] = ()


class PathSyntaxError(ValueError):
    """A path expression could not be parsed."""

    pass


def parse_path(expression: str) -> tuple[PathSegment, ...]:
    """Parse a path expression into segments.

    Raises:
        PathSyntaxError: If a segment is malformed
    """
    text = expression.strip()
    if text.startswith("$"):
        text = text[1:]
        if text.startswith("."):
            text = text[1:]
    if not text:
        return ()

    segments = []
    for raw in text.split("."):
        match = _SEGMENT.match(raw)
        if match is None or (not match.group("key") and not match.group("suffix")):
            raise PathSyntaxError(f"Invalid path segment '{raw}' in '{expression}'")
        selectors = tuple(
            int(index) if index else None
            for index in _SUFFIX.findall(match.group("suffix"))
        )
        segments.append(PathSegment(match.group("key"), selectors))
    return tuple(segments)


def resolve(value: Any, segments: tuple[PathSegment, ...]) -> list[Any]:
    """Evaluate parsed segments against a value.

    Returns every value reached. Missing keys and out-of-range indices
    contribute nothing; ``None`` values are kept.
    """
    current: list[Any] = [value]
    for segment in segments:
        following: list[Any] = []
        for item in current:
            if segment.key:
                if not isinstance(item, dict) or segment.key not in item:
                    continue
                item = item[segment.key]
            following.extend(_apply_selectors(item, segment.selectors))
        current = following
    return current


def _apply_selectors(value: Any, selectors: tuple[int | None, ...]) -> list[Any]:
    current = [value]
    for selector in selectors:
        following: list[Any] = []
        for item in current:
            if not isinstance(item, list):
                continue
            if selector is None:
                following.extend(item)
            elif selector < len(item):
                following.append(item[selector])
        current = following
    return current


def get_path(data: Any, path: str, default: Any = MISSING) -> Any:
    """Read a plain dotted path (no array syntax)."""
    current = data
    for part in [p for p in path.split(".") if p]:
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def set_path(data: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Assign a plain dotted path, creating intermediate objects.

    Returns the same mapping for chaining.
    """
    parts = [p for p in path.split(".") if p]
    if not parts:
        raise PathSyntaxError("Cannot assign to an empty path")
    current = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value
    return data


class PathResolver:
    """Parses and evaluates path expressions, memoizing through a PathCache."""

    def __init__(self, cache: PathCache | None = None):
        self.cache = cache

    def parse(self, expression: str) -> tuple[PathSegment, ...]:
        if self.cache is not None:
            entry = self.cache.get_path(expression)
            if entry is not None:
                return entry.segments
        segments = parse_path(expression)
        if self.cache is not None:
            self.cache.set_path(expression, segments)
        return segments

    def values(self, data: Any, expression: str) -> list[Any]:
        """Resolve an expression against one value."""
        return resolve(data, self.parse(expression))

    def values_from_items(self, items: list[Any], expression: str) -> list[Any]:
        """Resolve an expression against each item and concatenate results."""
        segments = self.parse(expression)
        found: list[Any] = []
        for item in items:
            found.extend(resolve(item, segments))
        return found

    def data_hash(self, data: Any) -> str | None:
        """Content hash for ``extract``; None when there is no cache."""
        if self.cache is None:
            return None
        return self.cache.hash_data(data)

    def extract(self, data: Any, expression: str, data_hash: str | None = None) -> list[Any]:
        """Resolve with extraction caching keyed by the data's content hash.

        Callers resolving many expressions against the same data pass the
        hash from ``data_hash`` so the data is hashed once.
        """
        if self.cache is None:
            return self.values(data, expression)
        if data_hash is None:
            data_hash = self.cache.hash_data(data)
        hit, cached = self.cache.get_extraction(data_hash, expression)
        if hit:
            return cached
        result = self.values(data, expression)
        self.cache.set_extraction(data_hash, expression, result)
        return result
