"""Unit tests for the document transformation coordinator.

Documents are served from memory so each test controls exactly what the
pipeline reads.
"""

import pytest

from fm2schema.core.exceptions import (
    ConfigurationError,
    DocumentProcessingError,
    MissingHandlerError,
)
from fm2schema.directives import DirectiveRegistry, TemplateHandler
from fm2schema.files import InMemoryFileReader
from fm2schema.pipeline import (
    Completed,
    DocumentTransformationCoordinator,
    Failed,
    PipelineStage,
    ProcessingStrategy,
    StrategyKind,
)
from fm2schema.schema import SchemaDocument
from fm2schema.structure import StructureKind

COLLECTION_SCHEMA = {
    "type": "object",
    "x-frontmatter-part": "items",
    "x-template": "out.json",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title"],
                "properties": {
                    "title": {"type": "string"},
                    "draft": {"type": "boolean", "default": False},
                },
            },
        }
    },
}

REGISTRY_SCHEMA = {
    "type": "object",
    "x-template": "registry.json",
    "properties": {
        "version": {"type": "string", "default": "1.0.0"},
        "tools": {
            "type": "object",
            "properties": {
                "availableConfigs": {
                    "type": "array",
                    "x-derived-from": "commands[].c1",
                    "x-derived-unique": True,
                },
                "commands": {
                    "type": "array",
                    "x-frontmatter-part": True,
                    "items": {"type": "object", "properties": {"c1": {"type": "string"}}},
                },
            },
        },
    },
}


def _doc(**fields):
    lines = [f"{key}: {value}" for key, value in fields.items()]
    return "---\n" + "\n".join(lines) + "\n---\n\nBody\n"


@pytest.fixture
def reader():
    return InMemoryFileReader(
        {
            "docs/a.md": _doc(title="Alpha"),
            "docs/b.md": _doc(title="Beta", draft="true"),
            "docs/c.md": _doc(title="Gamma"),
            "docs/plain.md": "# No front matter\n",
            "docs/untitled.md": _doc(draft="false"),
            "docs/broken.md": "---\ntitle: [unclosed\n---\n\nBody\n",
        }
    )


@pytest.fixture
def coordinator(reader):
    return DocumentTransformationCoordinator(reader=reader)


class TestSuccessfulRuns:
    """Test runs that complete."""

    @pytest.mark.asyncio
    async def test_collection_without_aggregation(self, coordinator):
        """Test that processed data is placed at the collection path."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = await coordinator.transform(schema, ["docs/a.md", "docs/b.md", "docs/c.md"])

        assert isinstance(result, Completed)
        assert result.is_success
        assert result.processed_count == 3
        assert result.aggregated_data is None
        assert result.structure.kind is StructureKind.COLLECTION
        assert result.collection_path == "items"
        assert result.strategy.kind is StrategyKind.SEQUENTIAL
        assert [item["title"] for item in result.output_data["items"]] == ["Alpha", "Beta", "Gamma"]

    @pytest.mark.asyncio
    async def test_item_defaults_populated(self, coordinator):
        """Test that item schema defaults fill missing fields."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = await coordinator.transform(schema, ["docs/a.md", "docs/b.md"])
        assert result.processed_data[0]["draft"] is False
        assert result.processed_data[1]["draft"] is True

    @pytest.mark.asyncio
    async def test_aggregated_items_carry_defaults(self, coordinator):
        """Test that aggregated and plain runs produce the same items."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        paths = ["docs/a.md", "docs/b.md"]

        plain = await coordinator.transform(schema, paths)
        aggregated = await coordinator.transform(schema, paths, aggregate=True)

        assert aggregated.aggregated_data is not None
        assert aggregated.output_data["items"] == plain.output_data["items"]
        assert aggregated.output_data["items"][0] == {"title": "Alpha", "draft": False}

    @pytest.mark.asyncio
    async def test_failed_documents_excluded(self, coordinator):
        """Test that bad documents are reported and the rest continue."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = await coordinator.transform(
            schema, ["docs/a.md", "docs/plain.md", "docs/untitled.md", "docs/missing.md"]
        )

        assert isinstance(result, Completed)
        assert result.processed_count == 1
        stages = {f.path: f.stage for f in result.failures}
        assert stages == {
            "docs/plain.md": "extract",
            "docs/untitled.md": "validate",
            "docs/missing.md": "read",
        }
        untitled = next(f for f in result.failures if f.path == "docs/untitled.md")
        assert untitled.errors[0].type == "missing_required_field"

    @pytest.mark.asyncio
    async def test_unparsable_front_matter_excluded(self, coordinator):
        """Test that invalid YAML fails one document and the run continues."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = await coordinator.transform(
            schema, ["docs/a.md", "docs/broken.md", "docs/c.md"]
        )

        assert isinstance(result, Completed)
        assert result.processed_count == 2
        assert [(f.path, f.stage) for f in result.failures] == [("docs/broken.md", "extract")]
        assert [item["title"] for item in result.output_data["items"]] == ["Alpha", "Gamma"]

    @pytest.mark.asyncio
    async def test_registry_aggregation(self):
        """Test aggregation with derived values and root defaults."""
        reader = InMemoryFileReader(
            {
                "cmd/git.md": _doc(c1="git", c2="commit"),
                "cmd/spec.md": _doc(c1="spec", c2="create"),
                "cmd/git2.md": _doc(c1="git", c2="push"),
            }
        )
        coordinator = DocumentTransformationCoordinator(reader=reader)
        schema = SchemaDocument(REGISTRY_SCHEMA)

        result = await coordinator.transform(
            schema, ["cmd/git.md", "cmd/spec.md", "cmd/git2.md"], aggregate=True
        )

        assert isinstance(result, Completed)
        assert result.structure.is_registry
        assert result.collection_path == "tools.commands"
        tools = result.aggregated_data["tools"]
        assert len(tools["commands"]) == 3
        assert tools["availableConfigs"] == ["git", "spec"]
        assert result.output_data["version"] == "1.0.0"
        assert "x-derived-from" in [a.directive for a in result.applications]

    @pytest.mark.asyncio
    async def test_aggregation_failure_degrades(self):
        """Test that a failing directive leaves a warning instead of aborting."""
        reader = InMemoryFileReader({"a.md": _doc(score="high"), "b.md": _doc(score="low")})
        schema = SchemaDocument(
            {
                "type": "object",
                "x-frontmatter-part": "items",
                "x-template": "out.json",
                "properties": {
                    "items": {"type": "array"},
                    "averageScore": {"type": "number", "x-derived-average": "items[].score"},
                },
            }
        )
        coordinator = DocumentTransformationCoordinator(reader=reader)

        result = await coordinator.transform(schema, ["a.md", "b.md"], aggregate=True)

        assert isinstance(result, Completed)
        assert result.aggregated_data is None
        assert result.warnings[0].startswith("Aggregation failed")
        assert len(result.output_data["items"]) == 2

    @pytest.mark.asyncio
    async def test_parallel_strategy_preserves_order(self):
        """Test that parallel processing returns documents in input order."""
        files = {f"d{i}.md": _doc(title=f"T{i}") for i in range(8)}
        coordinator = DocumentTransformationCoordinator(reader=InMemoryFileReader(files))
        schema = SchemaDocument(COLLECTION_SCHEMA)

        result = await coordinator.transform(schema, list(files))

        assert result.strategy.kind is StrategyKind.PARALLEL
        assert [d["title"] for d in result.processed_data] == [f"T{i}" for i in range(8)]

    @pytest.mark.asyncio
    async def test_strategy_override(self, coordinator):
        """Test that an explicit strategy is used."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = await coordinator.transform(
            schema, ["docs/a.md"], strategy=ProcessingStrategy.parallel(2)
        )
        assert str(result.strategy) == "parallel(workers=2)"

    def test_transform_sync(self, coordinator):
        """Test the synchronous entry point."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = coordinator.transform_sync(schema, ["docs/a.md"])
        assert result.processed_count == 1


class TestFailedRuns:
    """Test runs that abort."""

    @pytest.mark.asyncio
    async def test_no_valid_documents(self, coordinator):
        """Test that all documents failing aborts document processing."""
        schema = SchemaDocument(COLLECTION_SCHEMA)
        result = await coordinator.transform(schema, ["docs/plain.md", "docs/untitled.md"])

        assert isinstance(result, Failed)
        assert not result.is_success
        assert result.stage is PipelineStage.DOCUMENT_PROCESSING
        assert isinstance(result.error, DocumentProcessingError)
        assert str(result.error) == "No valid documents found to process"
        assert result.error.failure_count == 2
        assert len(result.failures) == 2

    @pytest.mark.asyncio
    async def test_no_documents(self, coordinator):
        """Test an empty input list."""
        result = await coordinator.transform(SchemaDocument(COLLECTION_SCHEMA), [])
        assert isinstance(result, Failed)
        assert str(result.error) == "No documents to process"

    @pytest.mark.asyncio
    async def test_malformed_directive_fails_first_stage(self, coordinator):
        """Test that directive errors abort before documents are read."""
        definition = dict(COLLECTION_SCHEMA, **{"x-template-format": "pdf"})
        result = await coordinator.transform(SchemaDocument(definition), ["docs/a.md"])

        assert isinstance(result, Failed)
        assert result.stage is PipelineStage.VALIDATION_ADJUSTMENT
        assert isinstance(result.error, ConfigurationError)
        assert result.processed_count == 0

    def test_incomplete_registry_rejected(self, reader):
        """Test that the coordinator needs a handler for every directive."""
        with pytest.raises(MissingHandlerError):
            DocumentTransformationCoordinator(
                reader=reader, registry=DirectiveRegistry([TemplateHandler()])
            )
