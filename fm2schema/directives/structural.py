"""Handlers that decide which documents form the collection."""

from fnmatch import fnmatch
from pathlib import PurePath
from typing import Any

from .base import Directive, DirectiveContext, DirectiveHandler, DirectiveOutcome
from .kinds import PHASE_COLLECTION, PHASE_STRUCTURE, DirectiveKind
from .paths import MISSING, get_path, set_path


def collection_target(data: Any, directive: Directive, context: DirectiveContext) -> str | None:
    """Path of the collection a collection-level directive applies to.

    The declaring property wins when it holds a list; otherwise the
    frontmatter-part path is used.
    """
    if directive.target_path and isinstance(get_path(data, directive.target_path), list):
        return directive.target_path
    return context.collection_path


class FrontmatterPartHandler(DirectiveHandler):
    """Marks the array property that receives one entry per document.

    ``true`` marks the declaring property; a string names the path directly.
    """

    kind = DirectiveKind.FRONTMATTER_PART
    priority = PHASE_STRUCTURE

    def validate_value(self, value: Any, target_path: str) -> Any:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip():
            return value.strip()
        raise self.invalid(
            f"{self.name} must be true or a property path, got {value!r}", target_path
        )

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        path = context.collection_path
        if not path or directive.value is False:
            return DirectiveOutcome(data, {"collection_path": None, "item_count": 0})

        current = get_path(data, path)
        if current is MISSING or not isinstance(current, list):
            set_path(data, path, list(context.items))
            current = get_path(data, path)

        return DirectiveOutcome(
            data, {"collection_path": path, "item_count": len(current)}
        )


class CollectPatternHandler(DirectiveHandler):
    """Keeps only documents whose path matches a glob.

    The pattern is tried against the full document path, against its
    trailing segments (so ``commands/*.md`` matches ``docs/commands/a.md``)
    and against the file name.
    """

    kind = DirectiveKind.COLLECT_PATTERN
    priority = PHASE_COLLECTION
    dependencies = (DirectiveKind.FRONTMATTER_PART,)

    def validate_value(self, value: Any, target_path: str) -> str:
        return self.require_string(value, target_path)

    def process(
        self, data: Any, directive: Directive, context: DirectiveContext
    ) -> DirectiveOutcome:
        path = collection_target(data, directive, context)
        collection = get_path(data, path) if path else MISSING
        if not isinstance(collection, list) or len(context.sources) != len(collection):
            return DirectiveOutcome(
                data,
                {"pattern": directive.value, "applied": False, "matched": 0, "excluded": 0},
            )

        kept_items = []
        kept_sources = []
        for item, source in zip(collection, context.sources, strict=True):
            if self.matches(source, directive.value):
                kept_items.append(item)
                kept_sources.append(source)

        set_path(data, path, kept_items)
        return DirectiveOutcome(
            data,
            {
                "pattern": directive.value,
                "applied": True,
                "matched": len(kept_items),
                "excluded": len(collection) - len(kept_items),
                "sources": kept_sources,
            },
        )

    @staticmethod
    def matches(source: str, pattern: str) -> bool:
        path = PurePath(source)
        return (
            fnmatch(path.as_posix(), pattern)
            or path.match(pattern)
            or fnmatch(path.name, pattern)
        )
