"""Aggregation of processed front matter into the schema's data shape."""

import copy
from dataclasses import dataclass, field
from typing import Any

from ..core.logging import get_logger
from ..directives.paths import get_path, set_path
from ..directives.processor import DirectiveApplication, SchemaDirectiveProcessor
from ..frontmatter.documents import MarkdownDocument
from ..schema.document import SchemaDocument
from ..structure.detector import DEFAULT_COLLECTION_PATH
from ..structure.types import FieldPatterns, StructureKind, StructureType

logger = get_logger(__name__)


@dataclass
class AggregatedResult:
    """Aggregated data plus what the directives did to it."""

    data: dict[str, Any]
    collection_path: str
    item_count: int
    applications: list[DirectiveApplication] = field(default_factory=list)


def collection_path_for(
    schema: SchemaDocument,
    structure: StructureType,
    field_patterns: FieldPatterns | None = None,
) -> str:
    """Where collected documents are placed in the aggregated data.

    The frontmatter-part path wins; otherwise the structure's own path, and
    for registries without one the first named registry field.
    """
    declared = schema.find_frontmatter_part_path()
    if declared:
        return declared
    if structure.kind is StructureKind.REGISTRY:
        named = (field_patterns or FieldPatterns()).named
        return named[0] if named else DEFAULT_COLLECTION_PATH
    return structure.path or DEFAULT_COLLECTION_PATH


class AggregationService:
    """Builds aggregated data and applies schema directives to it."""

    def __init__(self, processor: SchemaDirectiveProcessor):
        self.processor = processor

    def aggregate(
        self,
        schema: SchemaDocument,
        documents: list[MarkdownDocument],
        collection_path: str,
    ) -> AggregatedResult:
        """Place each document's front matter at the collection path and run directives.

        Item-schema defaults are filled in first, so directives see the same
        items the non-aggregated output holds.

        Raises:
            ConfigurationError: If a directive is malformed
            DirectiveProcessingError: If a directive handler fails
        """
        defaults = item_defaults(schema)
        items = [
            populate_defaults(doc.front_matter.to_dict(), defaults)
            for doc in documents
            if doc.front_matter
        ]
        sources = [doc.path for doc in documents if doc.front_matter]

        data: dict[str, Any] = {}
        set_path(data, collection_path, items)
        run = self.processor.apply(schema, data, collection_path, sources)

        collected = get_path(run.data, collection_path)
        item_count = len(collected) if isinstance(collected, list) else 0
        logger.debug(
            "Aggregation completed",
            collection_path=collection_path,
            documents=len(items),
            items=item_count,
            directives_applied=len(run.applications),
        )
        return AggregatedResult(
            data=run.data,
            collection_path=collection_path,
            item_count=item_count,
            applications=run.applications,
        )


def populate_defaults(data: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    """Fill missing top-level keys from schema defaults. Returns ``data``."""
    for key, value in defaults.items():
        if key not in data:
            data[key] = copy.deepcopy(value)
    return data


def item_defaults(schema: SchemaDocument) -> dict[str, Any]:
    """Defaults declared on the frontmatter-part item schema's properties."""
    item_schema = schema.frontmatter_item_schema() or {}
    properties = item_schema.get("properties")
    if not isinstance(properties, dict):
        return {}
    return {
        key: definition["default"]
        for key, definition in properties.items()
        if isinstance(definition, dict) and "default" in definition
    }
