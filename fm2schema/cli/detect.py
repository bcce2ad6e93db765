"""CLI commands for inspecting schemas.

`fm2schema detect` reports how a schema will be processed; `fm2schema check`
proves that data, schema and template share one structure.
"""

import json
import sys
import traceback
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table
import rich_click as click

from ..core import (
    ConfigurationError,
    FileAccessError,
    PipelineSettings,
    SchemaLoadError,
    configure_logging,
    get_settings,
)
from ..directives import SchemaDirectiveProcessor, create_default_registry
from ..files import LocalFileReader
from ..pipeline import collection_path_for
from ..schema import FileSchemaLoader, parse_schema_text, parse_structured_text
from ..structure import SchemaStructureDetector, StrictStructureMatcher

console = Console()


def _emit_error(output_format: str, error_type: str, message: str, file: str) -> None:
    if output_format == "json":
        click.echo(
            json.dumps(
                {
                    "status": "error",
                    "error_type": error_type,
                    "message": message,
                    "file": file,
                },
                indent=2,
            )
        )
    else:
        click.echo(f"❌ {message}")


def _describe_schema(schema_file: Path, settings: PipelineSettings) -> dict[str, Any]:
    """Collect the detection report for a schema file.

    Raises:
        SchemaLoadError: If the schema cannot be loaded
        ConfigurationError: If a directive is malformed
    """
    schema = FileSchemaLoader().load_schema_sync(schema_file)
    detector = SchemaStructureDetector(settings.field_patterns)
    structure = detector.detect_structure_type(schema)
    hints = detector.get_processing_hints(structure)

    registry = create_default_registry()
    processor = SchemaDirectiveProcessor(registry)
    directives = processor.ordered(processor.discover(schema))

    return {
        "schema": str(schema_file),
        "structure": str(structure),
        "frontmatter_part": schema.find_frontmatter_part_path(),
        "collection_path": collection_path_for(schema, structure, settings.field_patterns),
        "hints": {
            "requires_aggregation": hints.requires_aggregation,
            "expected_array_fields": list(hints.expected_array_fields),
            "derivation_rules": list(hints.derivation_rules),
            "template_format": hints.template_format,
        },
        "directives": [
            {
                "directive": d.directive.name,
                "schema_path": d.schema_path or "<root>",
                "priority": registry.get(d.directive.kind).priority,
            }
            for d in directives
        ],
    }


def _output_report(report: dict[str, Any]) -> None:
    if console.is_terminal:
        info_table = Table(show_header=False, box=None, padding=(0, 1))
        info_table.add_row("[bold]Schema:[/bold]", f"[cyan]{report['schema']}[/cyan]")
        info_table.add_row("[bold]Structure:[/bold]", f"[magenta]{report['structure']}[/magenta]")
        info_table.add_row(
            "[bold]Frontmatter part:[/bold]", f"[yellow]{report['frontmatter_part'] or '-'}[/yellow]"
        )
        info_table.add_row("[bold]Collection path:[/bold]", f"[yellow]{report['collection_path']}[/yellow]")
        info_table.add_row(
            "[bold]Requires aggregation:[/bold]", str(report["hints"]["requires_aggregation"])
        )
        console.print(info_table)

        if report["directives"]:
            console.print()
            table = Table(title="Directive processing order")
            table.add_column("#", style="dim")
            table.add_column("Directive", style="bold green")
            table.add_column("Schema path", style="cyan")
            table.add_column("Priority", justify="right")
            for index, entry in enumerate(report["directives"], 1):
                table.add_row(
                    str(index), entry["directive"], entry["schema_path"], str(entry["priority"])
                )
            console.print(table)
        return

    click.echo(f"Schema: {report['schema']}")
    click.echo(f"Structure: {report['structure']}")
    click.echo(f"Frontmatter part: {report['frontmatter_part'] or '-'}")
    click.echo(f"Collection path: {report['collection_path']}")
    click.echo(f"Requires aggregation: {report['hints']['requires_aggregation']}")
    for index, entry in enumerate(report["directives"], 1):
        click.echo(
            f"{index}. {entry['directive']} at {entry['schema_path']} (priority {entry['priority']})"
        )


@click.command("detect")
@click.argument("schema", type=click.Path(exists=False))
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="📋 **Output format** for the detection report",
    show_default=True,
)
@click.option("--verbose", "-v", is_flag=True, help="🔍 **Show tracebacks** on internal errors")
def detect_command(schema: str, format: str, verbose: bool) -> None:
    """🔎 **Detect how a schema will be processed**

    Prints the structure type, processing hints, frontmatter-part path and
    the order in which the schema's directives run.

    **Exit Codes:**
    - `0`: Report printed ✅
    - `1`: Schema invalid ❌
    - `2`: Schema not found 📁
    - `4`: Internal error 💥
    """
    schema_path = Path(schema)
    try:
        if not schema_path.exists():
            _emit_error(format, "file_not_found", f"Schema not found: {schema}", schema)
            sys.exit(2)

        settings = get_settings()
        configure_logging(
            environment=settings.environment,
            log_level="DEBUG" if verbose else settings.log_level,
            json_logs=settings.json_logs,
        )

        try:
            report = _describe_schema(schema_path, settings)
        except (SchemaLoadError, ConfigurationError) as e:
            _emit_error(format, "schema_invalid", str(e), schema)
            sys.exit(1)

        if format == "json":
            click.echo(json.dumps({"status": "ok", **report}, indent=2))
        else:
            _output_report(report)
        sys.exit(0)
    except Exception as e:
        _emit_error(format, "internal_error", f"Internal error: {e}", schema)
        if verbose and format != "json":
            click.echo("\nFull traceback:")
            click.echo(traceback.format_exc())
        sys.exit(4)


@click.command("check")
@click.argument("data", type=click.Path(exists=False))
@click.argument("schema", type=click.Path(exists=False))
@click.argument("template", type=click.Path(exists=False))
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="📋 **Output format** for the alignment result",
    show_default=True,
)
def check_command(data: str, schema: str, template: str, format: str) -> None:
    """📐 **Check structural alignment of data, schema and template**

    All three files are JSON or YAML. They align when the data and the
    schema describe identical shapes, and so do the schema and the template.
    Values are never compared, only their structure.

    **Exit Codes:**
    - `0`: Structures aligned ✅
    - `1`: Structures differ or a file cannot be parsed ❌
    - `2`: File not found 📁
    """
    reader = LocalFileReader()
    loaded: dict[str, Any] = {}
    for role, file in (("data", data), ("schema", schema), ("template", template)):
        try:
            parse = parse_schema_text if role == "schema" else parse_structured_text
            loaded[role] = parse(reader.read(file), Path(file).suffix)
        except FileAccessError as e:
            _emit_error(format, e.kind, str(e), file)
            sys.exit(2)
        except SchemaLoadError as e:
            _emit_error(format, "parse_error", f"Cannot parse {role}: {e}", file)
            sys.exit(1)

    result = StrictStructureMatcher().validate_structural_alignment(
        loaded["data"], loaded["schema"], loaded["template"]
    )

    if format == "json":
        output: dict[str, Any] = {"status": "aligned" if result.is_valid else "misaligned"}
        if not result.is_valid:
            output["errors"] = [
                {"type": error.type, "message": error.message, "path": error.path}
                for error in result.errors
            ]
        click.echo(json.dumps(output, indent=2))
    elif result.is_valid:
        click.echo("✅ Structures aligned")
    else:
        click.echo("❌ Structures differ")
        for error in result.errors:
            click.echo(f"  ❌ {error}")

    sys.exit(0 if result.is_valid else 1)
