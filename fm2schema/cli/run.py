"""CLI run command implementation.

This module implements the `fm2schema run` command: discover Markdown files,
run the transformation pipeline, render the schema's template and write the
result, reporting a summary in table or JSON form.
"""

import asyncio
import json
import re
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table
import rich_click as click

from ..core import (
    ConfigurationError,
    RenderError,
    SchemaLoadError,
    StructureValidationError,
    configure_logging,
    get_settings,
)
from ..core.config import PipelineSettings
from ..directives import create_default_registry
from ..files import discover_markdown_files
from ..pipeline import (
    Completed,
    DocumentTransformationCoordinator,
    Failed,
    ProcessingStrategy,
)
from ..schema import FileSchemaLoader
from ..templates import OutputWriter, TemplateRenderer, TemplateResolutionService

# Create console for rich formatting - auto-detects if we're in interactive environment
console = Console()


def _should_use_rich_formatting() -> bool:
    return console.is_terminal


def _error_type(error: Exception) -> str:
    """Snake-case error type name for JSON output, e.g. ``configuration_error``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", type(error).__name__).lower()


def _emit_error(output_format: str, error_type: str, message: str, file: str, **extra: Any) -> None:
    if output_format == "json":
        error_output: dict[str, Any] = {
            "status": "error",
            "error_type": error_type,
            "message": message,
            "file": file,
        }
        error_output.update(extra)
        click.echo(json.dumps(error_output, indent=2))
    else:
        click.echo(f"❌ {message}")


def _strategy_override(
    name: str | None, workers: int | None, settings: PipelineSettings
) -> ProcessingStrategy | None:
    if name is None:
        return None
    if name == "sequential":
        return ProcessingStrategy.sequential()
    if name == "parallel":
        return ProcessingStrategy.parallel(workers or settings.parallel_workers)
    return ProcessingStrategy.adaptive(
        workers or settings.adaptive_base_workers, settings.adaptive_threshold
    )


def _failure_dicts(result: Completed | Failed) -> list[dict[str, Any]]:
    return [
        {"path": f.path, "stage": f.stage, "message": f.message}
        for f in result.failures
    ]


def _output_failed(result: Failed, schema_file: str, output_format: str, verbose: bool) -> None:
    if output_format == "json":
        output: dict[str, Any] = {
            "status": "failed",
            "error_type": _error_type(result.error),
            "message": str(result.error),
            "file": schema_file,
            "stage": result.stage.value,
            "processed_count": result.processed_count,
            "failures": _failure_dicts(result),
        }
        click.echo(json.dumps(output, indent=2))
        return

    if _should_use_rich_formatting():
        console.print("❌ [bold red]Transformation failed[/bold red]")
        console.print(f"[bold]Stage:[/bold] [yellow]{result.stage.value}[/yellow]")
        console.print(f"[dim]{result.error}[/dim]")
    else:
        click.echo("❌ Transformation failed")
        click.echo(f"Stage: {result.stage.value}")
        click.echo(str(result.error))

    for failure in result.failures:
        click.echo(f"  ❌ {failure}")
        if verbose:
            for error in failure.errors:
                click.echo(f"     - {error}")


def _output_completed(
    result: Completed,
    output_path: Path,
    output_format_name: str,
    output_format: str,
    elapsed_ms: float,
    verbose: bool,
) -> None:
    if output_format == "json":
        output: dict[str, Any] = {
            "status": "success",
            "output": str(output_path),
            "output_format": output_format_name,
            "structure": str(result.structure),
            "strategy": str(result.strategy),
            "processed_count": result.processed_count,
            "failed_count": len(result.failures),
            "aggregated": result.aggregated_data is not None,
            "failures": _failure_dicts(result),
            "warnings": result.warnings,
        }
        if verbose:
            output["elapsed_ms"] = round(elapsed_ms, 1)
            output["directives_applied"] = [
                {"directive": a.directive, "schema_path": a.schema_path, "scope": a.scope}
                for a in result.applications
            ]
        click.echo(json.dumps(output, indent=2))
        return

    if _should_use_rich_formatting():
        console.print("✅ [bold green]Transformation complete[/bold green]")
        console.print()

        info_table = Table(show_header=False, box=None, padding=(0, 1))
        info_table.add_row("[bold]Output:[/bold]", f"[cyan]{output_path}[/cyan]")
        info_table.add_row("[bold]Format:[/bold]", f"[yellow]{output_format_name}[/yellow]")
        info_table.add_row("[bold]Structure:[/bold]", f"[magenta]{result.structure}[/magenta]")
        info_table.add_row("[bold]Documents:[/bold]", f"[green]{result.processed_count}[/green]")
        if result.failures:
            info_table.add_row("[bold red]Excluded:[/bold red]", f"[red]{len(result.failures)}[/red]")
        if verbose:
            info_table.add_row("[bold]Strategy:[/bold]", f"[dim]{result.strategy}[/dim]")
            info_table.add_row("[bold]Elapsed:[/bold]", f"[dim]{elapsed_ms:.1f}ms[/dim]")
            info_table.add_row(
                "[bold]Directives applied:[/bold]", f"[dim]{len(result.applications)}[/dim]"
            )
        console.print(info_table)

        for failure in result.failures:
            console.print(f"  [red]❌[/red] [cyan]{failure.path}[/cyan]: [dim]{failure.message}[/dim]")
        for warning in result.warnings:
            console.print(f"  ⚠️  [yellow]{warning}[/yellow]")
        return

    # Plain text for non-interactive (CI)
    click.echo("✅ Transformation complete")
    click.echo()
    click.echo(f"Output: {output_path}")
    click.echo(f"Format: {output_format_name}")
    click.echo(f"Structure: {result.structure}")
    click.echo(f"Documents: {result.processed_count}")
    if result.failures:
        click.echo(f"Excluded: {len(result.failures)}")
    if verbose:
        click.echo(f"Strategy: {result.strategy}")
        click.echo(f"Elapsed: {elapsed_ms:.1f}ms")
        click.echo(f"Directives applied: {len(result.applications)}")
    for failure in result.failures:
        click.echo(f"  ❌ {failure}")
    for warning in result.warnings:
        click.echo(f"  ⚠️  {warning}")


def _run_implementation(  # noqa: PLR0912, PLR0915
    schema: str,
    inputs: tuple[str, ...],
    output: str,
    aggregate: bool,
    strategy: str | None,
    workers: int | None,
    format: str,
    verbose: bool,
) -> None:
    schema_path = Path(schema)

    try:
        if not schema_path.exists():
            _emit_error(format, "file_not_found", f"Schema not found: {schema}", str(schema_path))
            sys.exit(2)

        missing = [item for item in inputs if not Path(item).exists()]
        if missing:
            _emit_error(
                format,
                "file_not_found",
                f"Input not found: {', '.join(missing)}",
                str(schema_path),
            )
            sys.exit(2)

        settings = get_settings()
        configure_logging(
            environment=settings.environment,
            log_level="DEBUG" if verbose else settings.log_level,
            json_logs=settings.json_logs,
        )

        paths = discover_markdown_files(list(inputs))

        try:
            schema_document = asyncio.run(FileSchemaLoader().load_schema(schema_path))
        except SchemaLoadError as e:
            _emit_error(format, "schema_load_error", f"Cannot load schema: {e}", str(schema_path))
            sys.exit(1)

        start_time = time.time()
        registry = create_default_registry()
        coordinator = DocumentTransformationCoordinator(settings=settings, registry=registry)
        result = asyncio.run(
            coordinator.transform(
                schema_document,
                list(paths),
                aggregate=aggregate,
                strategy=_strategy_override(strategy, workers, settings),
            )
        )

        if isinstance(result, Failed):
            _output_failed(result, str(schema_path), format, verbose)
            sys.exit(1)

        try:
            template = TemplateResolutionService(registry=registry).resolve(schema_document)
            renderer = TemplateRenderer(strict_structure=settings.strict_structure)
            rendered = renderer.render(
                template,
                result.output_data,
                result.collection_path,
                schema_document.definition,
            )
            written = OutputWriter().write(output, rendered)
        except (ConfigurationError, StructureValidationError, RenderError) as e:
            _emit_error(format, _error_type(e), str(e), str(schema_path))
            sys.exit(1)

        elapsed_ms = (time.time() - start_time) * 1000
        _output_completed(result, written, template.output_format, format, elapsed_ms, verbose)
        sys.exit(0)

    except KeyboardInterrupt:
        _emit_error(format, "interrupted", "Run interrupted by user", str(schema_path))
        sys.exit(4)
    except Exception as e:
        # Handle unexpected errors
        _emit_error(format, "internal_error", f"Internal error: {e}", str(schema_path))
        if verbose and format != "json":
            click.echo("\nFull traceback:")
            click.echo(traceback.format_exc())
        sys.exit(4)


@click.command("run")
@click.argument("schema", type=click.Path(exists=False))
@click.argument("inputs", nargs=-1, required=True, type=click.Path(exists=False))
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False),
    help="📝 **Output file** to write the rendered result to",
    metavar="PATH",
)
@click.option(
    "--aggregate/--no-aggregate",
    default=True,
    show_default=True,
    help="🧩 **Aggregate documents** and apply schema directives before rendering",
)
@click.option(
    "--strategy",
    type=click.Choice(["sequential", "parallel", "adaptive"]),
    default=None,
    help="⚙️ **Processing strategy**; chosen by file count when omitted",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="👷 **Worker pool size** for parallel and adaptive strategies",
)
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="📋 **Output format** for the run summary",
    show_default=True,
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="🔍 **Show detailed information** - strategy, timing, debug logs",
)
def run_command(
    schema: str,
    inputs: tuple[str, ...],
    output: str,
    aggregate: bool,
    strategy: str | None,
    workers: int | None,
    format: str,
    verbose: bool,
) -> None:
    """🚀 **Transform Markdown front matter into schema-shaped output**

    Reads the front matter of every Markdown file in INPUTS (directories are
    searched recursively), shapes it with the directives declared in SCHEMA and
    renders the schema's `x-template` to the output file.

    **Examples:**

    ```bash
    fm2schema run schema.json docs/ -o out.json
    fm2schema run schema.yaml a.md b.md -o out.yaml --format json
    fm2schema run schema.json docs/ -o out.json --strategy parallel --workers 8
    ```

    **Exit Codes:**
    - `0`: Output written ✅
    - `1`: Pipeline, template or render failure ❌
    - `2`: Schema or input not found 📁
    - `4`: Internal error 💥
    """
    _run_implementation(schema, inputs, output, aggregate, strategy, workers, format, verbose)
