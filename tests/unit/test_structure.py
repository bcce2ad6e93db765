"""Unit tests for structure detection and strict structural matching."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from fm2schema.schema import SchemaDocument
from fm2schema.structure import (
    FieldPatterns,
    NodeKind,
    SchemaStructureDetector,
    StrictStructureMatcher,
    StructureKind,
    StructureType,
    structures_equal,
)
from fm2schema.structure.matcher import find_first_mismatch


@pytest.fixture
def detector():
    """Detector with default field patterns."""
    return SchemaStructureDetector()


@pytest.fixture
def matcher():
    """Strict structure matcher."""
    return StrictStructureMatcher()


class TestFieldPatterns:
    """Test registry field patterns."""

    def test_defaults(self):
        """Test default sequential and named patterns."""
        patterns = FieldPatterns()
        assert patterns.matches("c1")
        assert patterns.matches("c42")
        assert patterns.matches("commands")
        assert not patterns.matches("cx")
        assert not patterns.matches("c1x")

    def test_invalid_regex_rejected(self):
        """Test that patterns must compile."""
        with pytest.raises(PydanticValidationError):
            FieldPatterns(sequential=["c(\\d+"])

    def test_patterns_are_immutable(self):
        """Test that patterns cannot be changed after creation."""
        patterns = FieldPatterns()
        with pytest.raises(PydanticValidationError):
            patterns.min_match_count = 5


class TestStructureDetection:
    """Test structure type detection."""

    def test_frontmatter_part_string_at_root(self, detector):
        """Test that a top-level frontmatter path is a collection."""
        schema = {
            "type": "object",
            "x-frontmatter-part": "items",
            "properties": {"items": {"type": "array"}},
        }
        assert detector.detect_structure_type(schema) == StructureType.collection("items")

    def test_frontmatter_part_true_on_nested_registry(self, detector):
        """Test that a nested named registry field is a registry."""
        schema = {
            "type": "object",
            "properties": {
                "tools": {
                    "type": "object",
                    "properties": {
                        "commands": {"type": "array", "x-frontmatter-part": True}
                    },
                }
            },
        }
        assert detector.detect_structure_type(schema).kind is StructureKind.REGISTRY

    def test_frontmatter_part_nested_custom(self, detector):
        """Test that other nested paths are custom."""
        schema = {
            "type": "object",
            "properties": {
                "library": {
                    "type": "object",
                    "properties": {"books": {"type": "array", "x-frontmatter-part": True}},
                }
            },
        }
        assert detector.detect_structure_type(schema) == StructureType.custom("library.books")

    def test_registry_from_sequential_fields(self, detector):
        """Test that two or more numbered fields make a registry."""
        schema = {
            "type": "object",
            "properties": {
                "c1": {"type": "string"},
                "c2": {"type": "string"},
                "c3": {"type": "string"},
            },
        }
        structure = detector.detect_structure_type(schema)
        assert structure.is_registry
        assert str(structure) == "registry"

    def test_min_match_count_respected(self):
        """Test that a single match is not enough by default but can be."""
        schema = {"type": "object", "properties": {"c1": {"type": "string"}}}
        assert not SchemaStructureDetector().detect_structure_type(schema).is_registry
        lenient = SchemaStructureDetector(FieldPatterns(min_match_count=1))
        assert lenient.detect_structure_type(schema).is_registry

    def test_inferred_from_array_property(self, detector):
        """Test that the first array property becomes the collection."""
        schema = {
            "type": "object",
            "properties": {"title": {"type": "string"}, "posts": {"type": "array"}},
        }
        assert detector.detect_structure_type(schema) == StructureType.collection("posts")

    def test_fallback_to_items_collection(self, detector):
        """Test the default for schemas with nothing to go on."""
        assert detector.detect_structure_type({"type": "object"}) == StructureType.collection(
            "items"
        )
        assert detector.detect_structure_type("not a schema") == StructureType.collection(
            "items"
        )

    def test_accepts_schema_document(self, detector):
        """Test detection from a SchemaDocument."""
        document = SchemaDocument({"type": "object", "x-frontmatter-part": "docs"})
        assert detector.detect_structure_type(document) == StructureType.collection("docs")


class TestProcessingHints:
    """Test processing hints per structure type."""

    def test_registry_hints(self, detector):
        """Test registry hints."""
        hints = detector.get_processing_hints(StructureType.registry())
        assert hints.requires_aggregation is True
        assert hints.expected_array_fields == ["commands"]
        assert hints.derivation_rules == ["availableConfigs"]
        assert hints.template_format == "json"

    def test_collection_hints(self, detector):
        """Test collection hints."""
        hints = detector.get_processing_hints(StructureType.collection("posts"))
        assert hints.requires_aggregation is False
        assert hints.expected_array_fields == ["posts"]
        assert hints.template_format == "auto"

    def test_custom_hints(self, detector):
        """Test custom hints use the last path segment."""
        hints = detector.get_processing_hints(StructureType.custom("library.books"))
        assert hints.requires_aggregation is True
        assert hints.expected_array_fields == ["books"]


class TestStructureAnalysis:
    """Test shape analysis of data and schemas."""

    def test_primitive_kinds(self, matcher):
        """Test that booleans are not numbers."""
        assert matcher.analyze_yaml_structure(True).value.kind is NodeKind.BOOLEAN
        assert matcher.analyze_yaml_structure(1).value.kind is NodeKind.NUMBER
        assert matcher.analyze_yaml_structure(1.5).value.kind is NodeKind.NUMBER
        assert matcher.analyze_yaml_structure(None).value.kind is NodeKind.NULL

    def test_empty_array_has_null_element(self, matcher):
        """Test the element shape of an empty array."""
        node = matcher.analyze_yaml_structure([], "tags").value
        assert node.kind is NodeKind.ARRAY
        assert node.element_type.kind is NodeKind.NULL
        assert node.element_type.path == "tags[]"

    def test_heterogeneous_array_rejected(self, matcher):
        """Test that array elements must share a shape."""
        result = matcher.analyze_yaml_structure([{"a": 1}, {"b": 2}])
        assert not result.is_valid
        error = result.errors[0]
        assert error.type == "inconsistent_array_structure"
        assert "element 1 differs from element 0" in error.message

    def test_values_do_not_matter(self, matcher):
        """Test that equal shapes with different values are equal."""
        a = matcher.analyze_yaml_structure({"n": 1, "s": "x"}).value
        b = matcher.analyze_yaml_structure({"s": "y", "n": 99}).value
        assert structures_equal(a, b)

    def test_one_sided_element_type(self, matcher):
        """Test that a missing element type on either side is a mismatch."""
        node = matcher.analyze_yaml_structure(["x"], "tags").value.element_type
        assert find_first_mismatch(None, None) is None
        assert not structures_equal(node, None)
        assert find_first_mismatch(None, node) == (
            "'tags[]': element type present on one side only"
        )

    def test_schema_must_be_object(self, matcher):
        """Test non-mapping schemas."""
        result = matcher.analyze_schema_structure(["not", "a", "schema"])
        assert result.errors[0].message == "Schema must be an object"

    def test_unsupported_schema_type(self, matcher):
        """Test schema types outside the supported set."""
        result = matcher.analyze_schema_structure({"type": "integer"})
        assert result.errors[0].message == "Unsupported schema type: integer"


class TestStructuralAlignment:
    """Test three-way structural alignment."""

    def _schema(self):
        return {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        }

    def test_aligned(self, matcher):
        """Test identical shapes pass."""
        result = matcher.validate_structural_alignment(
            {"name": "a", "tags": ["x"]},
            self._schema(),
            {"name": "{name}", "tags": ["{tag}"]},
        )
        assert result.is_valid

    def test_data_schema_mismatch(self, matcher):
        """Test that extra data keys fail the data/schema pair."""
        result = matcher.validate_structural_alignment(
            {"name": "a", "tags": ["x"], "extra": 1},
            self._schema(),
            {"name": "", "tags": [""]},
        )
        assert not result.is_valid
        assert result.errors[0].type == "schema_validation_failed"
        assert result.errors[0].message == "YAML structure does not match Schema"

    def test_schema_template_mismatch(self, matcher):
        """Test that a template with a different kind fails the schema/template pair."""
        result = matcher.validate_structural_alignment(
            {"name": "a", "tags": ["x"]},
            self._schema(),
            {"name": "", "tags": "x"},
        )
        assert not result.is_valid
        assert result.errors[0].type == "template_mapping_failed"
        assert "tags" in result.errors[0].path

    def test_no_optional_field_tolerance(self, matcher):
        """Test that a missing optional field still fails."""
        result = matcher.validate_structural_alignment(
            {"name": "a"}, self._schema(), {"name": "", "tags": [""]}
        )
        assert not result.is_valid
