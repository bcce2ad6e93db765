"""Serializing rendered output and writing it to disk."""

import json
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import RenderError
from ..core.logging import get_logger
from .renderer import RenderedOutput

logger = get_logger(__name__)


def serialize(value: Any, output_format: str) -> str:
    """Serialize a rendered value in the given format.

    Text values pass through unchanged whatever the format.

    Raises:
        RenderError: If the value cannot be serialized
    """
    if isinstance(value, str):
        return value if value.endswith("\n") else value + "\n"
    try:
        if output_format == "yaml":
            return yaml.safe_dump(value, sort_keys=False, allow_unicode=True)
        if output_format == "json":
            return json.dumps(value, indent=2, ensure_ascii=False) + "\n"
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise RenderError(f"Cannot serialize output as {output_format}: {e}", cause=e) from e
    raise RenderError(
        f"Structured value cannot be written as {output_format}; "
        "use a text template for this format"
    )


class OutputWriter:
    """Writes rendered output to a caller-specified path."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def write(self, path: str | Path, rendered: RenderedOutput) -> Path:
        """Serialize and write, creating parent directories.

        Returns:
            The path written

        Raises:
            RenderError: If serialization or writing fails
        """
        text = serialize(rendered.value, rendered.output_format)
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding=self.encoding)
        except OSError as e:
            raise RenderError(f"Cannot write output to {target}: {e}", cause=e) from e
        logger.info(
            "Output written",
            path=str(target),
            output_format=rendered.output_format,
            bytes=len(text.encode(self.encoding)),
        )
        return target
