"""Error and result data structures for validation.

Front-matter validation, structural analysis and three-way alignment all
report problems through these types, so the CLI and the coordinator can
render them the same way.
"""

from dataclasses import dataclass, field
from typing import Any

CRITICAL_ERROR_TYPES = frozenset(
    {
        "schema_validation_failed",
        "template_mapping_failed",
        "inconsistent_array_structure",
    }
)


@dataclass
class _Issue:
    type: str
    message: str
    path: str | None = None
    document: str | None = None
    help: str | None = None

    def __str__(self) -> str:
        parts = [f"{self.type}: {self.message}"]
        if self.document:
            parts.append(f"(document: {self.document})")
        if self.path:
            parts.append(f"(path: {self.path})")
        if self.help:
            parts.append(f"Help: {self.help}")
        return " ".join(parts)


@dataclass
class ValidationError(_Issue):
    """A problem that makes a document, schema or template unusable.

    ``path`` locates the offending value inside the data, ``document`` names
    the Markdown file it came from when there is one.
    """


@dataclass
class ValidationWarning(_Issue):
    """A problem worth reporting that does not fail validation."""


@dataclass
class ValidationResult:
    """Outcome of one validation pass.

    ``value`` carries whatever was validated (front matter, a structure node)
    when the pass succeeded.
    """

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    value: Any | None = None

    @classmethod
    def success(cls, value: Any | None = None) -> "ValidationResult":
        return cls(is_valid=True, value=value)

    @classmethod
    def failure(cls, errors: list[ValidationError]) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))

    def add_error(self, error: ValidationError) -> None:
        """Record an error; the result becomes invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: ValidationWarning) -> None:
        self.warnings.append(warning)

    def has_critical_errors(self) -> bool:
        """True when a structural error means rendering cannot succeed."""
        return any(error.type in CRITICAL_ERROR_TYPES for error in self.errors)

    def summary(self) -> str:
        """One line per issue, headed by the overall status."""
        status = "valid" if self.is_valid else "invalid"
        lines = [f"{status}: {len(self.errors)} error(s), {len(self.warnings)} warning(s)"]
        lines.extend(f"  error   {error}" for error in self.errors)
        lines.extend(f"  warning {warning}" for warning in self.warnings)
        return "\n".join(lines)

    __str__ = summary
