"""Front-matter extraction from Markdown text.

Extraction never raises: text without front matter, or with front matter
that fails to parse, yields ``Absent`` carrying the original content.
"""

import datetime
from dataclasses import dataclass
from typing import Any

import frontmatter

from ..core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Present:
    """Front matter was found and parsed into a mapping."""

    front_matter: dict[str, Any]
    body: str


@dataclass(frozen=True)
class Absent:
    """No usable front matter. ``reason`` explains why when parsing failed."""

    body: str
    reason: str | None = None


ExtractionResult = Present | Absent


def normalize_value(value: Any) -> Any:
    """Convert YAML-native values into JSON-compatible ones."""
    if isinstance(value, dict):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    return value


class FrontmatterExtractor:
    """Extracts YAML, JSON or TOML front matter using python-frontmatter."""

    def extract(self, content: str) -> ExtractionResult:
        """Split text into front matter and body.

        Args:
            content: Raw document text

        Returns:
            Present with the parsed mapping, or Absent with the original text
        """
        try:
            if not frontmatter.checks(content):
                return Absent(body=content)
            post = frontmatter.loads(content)
        except Exception as e:
            # Any parser failure degrades to Absent by contract
            logger.debug("Front matter could not be parsed", error=str(e))
            return Absent(body=content, reason=f"Invalid front matter: {e}")

        metadata = post.metadata
        if not isinstance(metadata, dict):
            return Absent(body=content, reason="Front matter is not a mapping")
        return Present(front_matter=normalize_value(metadata), body=post.content)
