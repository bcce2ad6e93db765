"""Schema-driven structure detection.

Classifies the dataset a schema describes as a registry, a collection or a
custom shape. The ``x-frontmatter-part`` directive always takes precedence;
property-name patterns are consulted only when it is absent.
"""

from typing import Any

from ..core.logging import get_logger
from ..schema.document import SchemaDocument
from .types import FieldPatterns, ProcessingHints, StructureKind, StructureType

logger = get_logger(__name__)

DEFAULT_COLLECTION_PATH = "items"


class SchemaStructureDetector:
    """Detects the structure type of a schema.

    Detection runs four steps and the first match wins:

    1. The ``x-frontmatter-part`` path, classified by its shape
    2. Registry detection from property names matching the field patterns
    3. Inference from property types
    4. A generic ``items`` collection
    """

    def __init__(self, field_patterns: FieldPatterns | None = None):
        self.field_patterns = field_patterns or FieldPatterns()

    def detect_structure_type(self, schema: SchemaDocument | dict[str, Any]) -> StructureType:
        """Classify a schema. Always returns a structure type."""
        if not isinstance(schema, SchemaDocument):
            if not isinstance(schema, dict):
                return StructureType.collection(DEFAULT_COLLECTION_PATH)
            schema = SchemaDocument(schema)

        path = schema.find_frontmatter_part_path()
        if path:
            structure = self.classify_path(path)
            logger.debug(
                "Structure detected from x-frontmatter-part",
                path=path,
                structure=str(structure),
            )
            return structure

        properties = schema.root.properties

        if self._has_registry_pattern(properties):
            logger.debug("Structure detected from registry field patterns")
            return StructureType.registry()

        inferred = self._infer_from_properties(properties)
        if inferred is not None:
            logger.debug("Structure inferred from properties", structure=str(inferred))
            return inferred

        return StructureType.collection(DEFAULT_COLLECTION_PATH)

    def classify_path(self, path: str) -> StructureType:
        """Classify a frontmatter-part path by its shape.

        A nested path whose last segment is a named registry field (for
        example ``tools.commands``) is a registry, a single top-level
        segment is a collection, anything else is custom.
        """
        segments = [s for s in path.replace("[]", "").split(".") if s]
        if not segments:
            return StructureType.collection(DEFAULT_COLLECTION_PATH)
        if len(segments) > 1 and segments[-1] in self.field_patterns.named:
            return StructureType.registry()
        if len(segments) == 1:
            return StructureType.collection(segments[0])
        return StructureType.custom(".".join(segments))

    def get_processing_hints(self, structure_type: StructureType) -> ProcessingHints:
        """Look up how downstream stages should treat a structure type."""
        if structure_type.kind is StructureKind.REGISTRY:
            return ProcessingHints(
                requires_aggregation=True,
                expected_array_fields=list(self.field_patterns.named),
                derivation_rules=["availableConfigs"],
                template_format="json",
            )
        if structure_type.kind is StructureKind.COLLECTION:
            return ProcessingHints(
                requires_aggregation=False,
                expected_array_fields=[structure_type.path or DEFAULT_COLLECTION_PATH],
                derivation_rules=[],
                template_format="auto",
            )
        segments = (structure_type.path or "").split(".")
        return ProcessingHints(
            requires_aggregation=True,
            expected_array_fields=[segments[-1] or DEFAULT_COLLECTION_PATH],
            derivation_rules=[],
            template_format="auto",
        )

    def _has_registry_pattern(self, properties: dict[str, Any]) -> bool:
        match_count = sum(1 for key in properties if self.field_patterns.matches(key))
        return match_count >= self.field_patterns.min_match_count

    def _infer_from_properties(self, properties: dict[str, Any]) -> StructureType | None:
        for key, definition in properties.items():
            if isinstance(definition, dict) and definition.get("type") == "array":
                if self.field_patterns.matches(key):
                    return StructureType.registry()
                return StructureType.collection(key)

        for key, definition in properties.items():
            if (
                isinstance(definition, dict)
                and definition.get("type") == "object"
                and self.field_patterns.matches(key)
            ):
                return StructureType.custom(key)

        return None
