"""Exceptions for the schema-directive processing pipeline.

Errors are grouped by origin. Configuration problems are always fatal,
structural problems are fatal to the operation they occur in, and directive
processing problems propagate to whoever invoked the handler.
"""

from typing import Any


class PipelineError(Exception):
    """Base exception for all pipeline operations.

    This is the parent class for every error raised by fm2schema,
    allowing callers to catch all pipeline issues with a single except clause.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize pipeline error.

        Args:
            message: Human-readable error description
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(PipelineError):
    """Error in schema directives or pipeline configuration.

    Raised when:
    - A present directive has a malformed value
    - A required directive such as x-template is missing
    - A required collaborator is missing at construction time
    - Handler registration or ordering is inconsistent
    """

    def __init__(
        self,
        message: str,
        directive: str | None = None,
        schema_path: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.directive = directive
        self.schema_path = schema_path

    def __str__(self) -> str:
        parts = [self.message]
        if self.directive:
            parts.append(f"(directive: {self.directive})")
        if self.schema_path:
            parts.append(f"(schema path: {self.schema_path})")
        return " ".join(parts)


class DuplicateHandlerError(ConfigurationError):
    """A directive handler was registered twice under the same name."""

    def __init__(self, name: str):
        super().__init__(f"Handler already registered: {name}", directive=name)
        self.name = name


class CircularDependencyError(ConfigurationError):
    """Directive handler dependencies form a cycle."""

    def __init__(self, handler: str):
        super().__init__(
            f"Circular dependency detected involving {handler}", directive=handler
        )
        self.handler = handler


class MissingHandlerError(ConfigurationError):
    """A directive kind has no registered handler."""

    def __init__(self, kinds: list[str]):
        super().__init__(
            f"No handler registered for directive(s): {', '.join(sorted(kinds))}"
        )
        self.kinds = kinds


class StructureValidationError(PipelineError):
    """Structural analysis or alignment failed.

    Raised when:
    - An array holds elements of different shapes
    - A schema node declares an unsupported type
    - Data, schema and template shapes are not identical
    """

    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(message)
        self.errors = errors or []


class DirectiveProcessingError(PipelineError):
    """A directive handler failed to transform collected data."""

    def __init__(
        self, directive: str, message: str, cause: Exception | None = None
    ):
        super().__init__(f"{directive}: {message}", cause)
        self.directive = directive


class NoNumericValuesError(DirectiveProcessingError):
    """x-derived-average found nothing it could average."""

    def __init__(self, source: str):
        super().__init__(
            "x-derived-average", f"No numeric values found at '{source}'"
        )
        self.source = source


class DocumentProcessingError(PipelineError):
    """Document processing produced nothing usable.

    Raised when:
    - Every input document failed to read, extract or validate
    - No input documents were given
    """

    def __init__(self, message: str, failure_count: int = 0):
        super().__init__(message)
        self.failure_count = failure_count


class InitializationError(PipelineError):
    """A service was used before it was initialized."""

    pass


class FileAccessError(PipelineError):
    """A file could not be read.

    The ``kind`` attribute is one of ``not_found``, ``permission_denied``
    or ``read_error``.
    """

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    READ_ERROR = "read_error"

    def __init__(self, path: str, kind: str, cause: Exception | None = None):
        descriptions = {
            self.NOT_FOUND: "File not found",
            self.PERMISSION_DENIED: "Permission denied",
            self.READ_ERROR: "Cannot read file",
        }
        super().__init__(f"{descriptions.get(kind, 'Cannot read file')}: {path}", cause)
        self.path = path
        self.kind = kind


class SchemaLoadError(PipelineError):
    """A schema file could not be loaded or parsed."""

    pass


class RenderError(PipelineError):
    """A template could not be parsed, rendered or serialized."""

    pass
