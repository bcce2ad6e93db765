"""Document and front-matter value types."""

import copy
from dataclasses import dataclass, field
from typing import Any

from ..validation.errors import ValidationError


@dataclass(frozen=True)
class FrontmatterData:
    """Front-matter fields of one document, in declaration order."""

    fields: dict[str, Any]
    source: str

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def keys(self) -> list[str]:
        return list(self.fields.keys())

    def to_dict(self) -> dict[str, Any]:
        """Independent copy of the fields."""
        return copy.deepcopy(self.fields)

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class MarkdownDocument:
    """A processed Markdown document."""

    path: str
    body: str
    front_matter: FrontmatterData | None = None

    @property
    def has_front_matter(self) -> bool:
        return self.front_matter is not None


@dataclass(frozen=True)
class DocumentFailure:
    """A document excluded from processing, and why.

    ``stage`` is ``read``, ``extract`` or ``validate``.
    """

    path: str
    stage: str
    message: str
    errors: list[ValidationError] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.path} ({self.stage}): {self.message}"
