"""Core infrastructure: configuration, logging and the exception hierarchy."""

from .config import PipelineSettings, get_settings
from .exceptions import (
    CircularDependencyError,
    ConfigurationError,
    DirectiveProcessingError,
    DocumentProcessingError,
    DuplicateHandlerError,
    FileAccessError,
    InitializationError,
    MissingHandlerError,
    NoNumericValuesError,
    PipelineError,
    RenderError,
    SchemaLoadError,
    StructureValidationError,
)
from .logging import (
    PipelineStageLogger,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    # Configuration
    "PipelineSettings",
    "get_settings",
    # Exceptions
    "PipelineError",
    "ConfigurationError",
    "DuplicateHandlerError",
    "CircularDependencyError",
    "MissingHandlerError",
    "StructureValidationError",
    "DirectiveProcessingError",
    "NoNumericValuesError",
    "DocumentProcessingError",
    "InitializationError",
    "FileAccessError",
    "SchemaLoadError",
    "RenderError",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "PipelineStageLogger",
]
