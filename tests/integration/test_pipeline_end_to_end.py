"""Integration tests for the complete transformation flow.

Each test writes a schema, templates and Markdown documents to a temporary
directory, then runs schema loading, document processing, aggregation,
template resolution, rendering and output writing against the real files.
"""

import json
from pathlib import Path
import tempfile

import pytest
import yaml

from fm2schema import (
    Completed,
    DocumentTransformationCoordinator,
    FileSchemaLoader,
    PipelineSettings,
)
from fm2schema.files import discover_markdown_files
from fm2schema.structure import StrictStructureMatcher
from fm2schema.templates import OutputWriter, TemplateRenderer, TemplateResolutionService


def _write_doc(directory: Path, name: str, front_matter: dict | None, body: str = "Body") -> None:
    if front_matter is None:
        (directory / name).write_text(f"# {name}\n\n{body}\n")
        return
    block = yaml.safe_dump(front_matter, sort_keys=False)
    (directory / name).write_text(f"---\n{block}---\n\n{body}\n")


async def _render_to(schema_file: Path, inputs: list[Path], output: Path, aggregate: bool = True):
    schema = await FileSchemaLoader().load_schema(schema_file)
    coordinator = DocumentTransformationCoordinator(settings=PipelineSettings())
    result = await coordinator.transform(
        schema, discover_markdown_files(inputs), aggregate=aggregate
    )
    assert isinstance(result, Completed), result

    template = TemplateResolutionService(registry=coordinator.registry).resolve(schema)
    rendered = TemplateRenderer().render(
        template, result.output_data, result.collection_path, schema.definition
    )
    OutputWriter().write(output, rendered)
    return result


class TestCollectionPipeline:
    """A flat collection of documents."""

    @pytest.fixture
    def workspace(self):
        """Schema, template and three documents, one without front matter."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            schema = {
                "type": "object",
                "x-frontmatter-part": "items",
                "x-template": "out.json",
                "properties": {"items": {"type": "array"}},
            }
            (root / "schema.json").write_text(json.dumps(schema))
            (root / "out.json").write_text('{"items": []}')
            docs = root / "docs"
            docs.mkdir()
            _write_doc(docs, "a.md", {"title": "A", "order": 1})
            _write_doc(docs, "b.md", {"title": "B", "order": 2})
            _write_doc(docs, "c.md", {"title": "C", "order": 3})
            yield root

    @pytest.mark.asyncio
    async def test_documents_collected_in_order(self, workspace):
        """Test that every document lands in the collection."""
        schema = await FileSchemaLoader().load_schema(workspace / "schema.json")
        coordinator = DocumentTransformationCoordinator()
        paths = discover_markdown_files([workspace / "docs"])

        result = await coordinator.transform(schema, paths)

        assert result.processed_count == 3
        assert result.aggregated_data is None
        assert [d["title"] for d in result.processed_data] == ["A", "B", "C"]

        aggregated = await coordinator.transform(schema, paths, aggregate=True)
        assert [d["order"] for d in aggregated.aggregated_data["items"]] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_document_without_front_matter_excluded(self, workspace):
        """Test that a plain Markdown file is reported and skipped."""
        _write_doc(workspace / "docs", "notes.md", None)
        output = workspace / "out" / "result.json"

        result = await _render_to(workspace / "schema.json", [workspace / "docs"], output)

        assert result.processed_count == 3
        assert len(result.failures) == 1
        assert result.failures[0].stage == "extract"
        assert result.failures[0].path.endswith("notes.md")
        assert len(json.loads(output.read_text())["items"]) == 3

    @pytest.mark.asyncio
    async def test_yaml_output(self, workspace):
        """Test that a YAML template produces YAML output."""
        schema = json.loads((workspace / "schema.json").read_text())
        schema["x-template"] = "out.yaml"
        (workspace / "schema.json").write_text(json.dumps(schema))
        (workspace / "out.yaml").write_text("count: 0\nitems: []\n")
        output = workspace / "result.yaml"

        await _render_to(workspace / "schema.json", [workspace / "docs"], output)

        written = yaml.safe_load(output.read_text())
        assert [item["title"] for item in written["items"]] == ["A", "B", "C"]
        assert written["count"] == 0


class TestBlogPipeline:
    """Filtering and derivation over a blog."""

    @pytest.fixture
    def workspace(self, tmp_path):
        """Blog schema with filter, derivations and a summary template."""
        schema = {
            "type": "object",
            "x-template": "index.json",
            "properties": {
                "posts": {
                    "type": "array",
                    "x-frontmatter-part": True,
                    "x-jmespath-filter": "[?draft != `true`]",
                    "items": {
                        "type": "object",
                        "required": ["title"],
                        "properties": {
                            "title": {"type": "string"},
                            "tags": {"type": "array"},
                            "status": {"type": "string"},
                            "draft": {"type": "boolean", "default": False},
                        },
                    },
                },
                "allTags": {
                    "type": "array",
                    "x-derived-from": "posts[].tags",
                    "x-derived-flatten": True,
                    "x-derived-unique": True,
                },
                "postCount": {"type": "integer", "x-derived-count": "posts[].title"},
                "publishedCount": {
                    "type": "integer",
                    "x-derived-count-where": {"from": "posts", "where": "status === 'published'"},
                },
                "generator": {"type": "string", "default": "fm2schema"},
            },
        }
        (tmp_path / "schema.json").write_text(json.dumps(schema))
        template = {
            "generator": "{{generator}}",
            "stats": {"posts": "{postCount}", "published": "{publishedCount}"},
            "tags": "{{allTags}}",
            "posts": [],
        }
        (tmp_path / "index.json").write_text(json.dumps(template))

        posts = tmp_path / "posts"
        posts.mkdir()
        _write_doc(posts, "01-one.md", {"title": "One", "tags": ["python", "yaml"], "status": "published"})
        _write_doc(
            posts,
            "02-two.md",
            {"title": "Two", "tags": ["python", ["nested"]], "status": "draft", "draft": True},
        )
        _write_doc(posts, "03-three.md", {"title": "Three", "tags": ["md"], "status": "published"})
        _write_doc(posts, "04-four.md", {"title": "Four", "tags": [], "status": "review"})
        return tmp_path

    @pytest.mark.asyncio
    async def test_rendered_summary(self, workspace):
        """Test the filtered, derived and rendered index."""
        output = workspace / "site" / "index.json"

        result = await _render_to(workspace / "schema.json", [workspace / "posts"], output)

        assert result.processed_count == 4
        assert str(result.structure) == "collection(posts)"
        written = json.loads(output.read_text())
        assert written["generator"] == "fm2schema"
        assert written["stats"] == {"posts": 3, "published": 2}
        assert written["tags"] == ["python", "yaml", "md"]
        assert [post["title"] for post in written["posts"]] == ["One", "Three", "Four"]

    @pytest.mark.asyncio
    async def test_directive_order_recorded(self, workspace):
        """Test that the filter runs before derivations."""
        output = workspace / "index-out.json"
        result = await _render_to(workspace / "schema.json", [workspace / "posts"], output)
        applied = [a.directive for a in result.applications]
        assert applied.index("x-jmespath-filter") < applied.index("x-derived-from")
        assert applied.index("x-frontmatter-part") == 0


class TestRegistryPipeline:
    """A command registry built from numbered fields."""

    @pytest.mark.asyncio
    async def test_registry_output(self, tmp_path):
        """Test registry detection, unique derivation and rendering."""
        schema = {
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
                            "items": {
                                "type": "object",
                                "properties": {
                                    "c1": {"type": "string"},
                                    "c2": {"type": "string"},
                                    "c3": {"type": "string"},
                                },
                            },
                        },
                    },
                },
            },
        }
        (tmp_path / "schema.json").write_text(json.dumps(schema))
        (tmp_path / "registry.json").write_text(
            json.dumps(
                {
                    "version": "{{version}}",
                    "tools": {"availableConfigs": "{{tools.availableConfigs}}", "commands": []},
                }
            )
        )
        commands = tmp_path / "commands"
        commands.mkdir()
        _write_doc(commands, "git-commit.md", {"c1": "git", "c2": "commit", "c3": "message"})
        _write_doc(commands, "git-merge.md", {"c1": "git", "c2": "merge", "c3": "branch"})
        _write_doc(commands, "spec-create.md", {"c1": "spec", "c2": "create"})
        output = tmp_path / "registry-out.json"

        result = await _render_to(tmp_path / "schema.json", [commands], output)

        assert result.structure.is_registry
        assert result.hints.requires_aggregation
        written = json.loads(output.read_text())
        assert written["version"] == "1.0.0"
        assert written["tools"]["availableConfigs"] == ["git", "spec"]
        assert len(written["tools"]["commands"]) == 3


class TestStrictAlignment:
    """Strict structure checks over parsed files."""

    def test_heterogeneous_data_rejected(self, tmp_path):
        """Test that mixed array element shapes fail analysis."""
        data_file = tmp_path / "data.yaml"
        data_file.write_text("items:\n  - name: a\n  - title: b\n")
        data = yaml.safe_load(data_file.read_text())

        result = StrictStructureMatcher().analyze_yaml_structure(data)

        assert not result.is_valid
        assert result.errors[0].type == "inconsistent_array_structure"
        assert result.errors[0].path == "items[1]"
