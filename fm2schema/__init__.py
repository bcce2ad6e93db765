"""fm2schema - Markdown front matter to schema-shaped, template-rendered output."""

__version__ = "0.1.0"
__author__ = "fm2schema contributors"

# Re-export main components for easy access
# Note: CLI components imported on-demand to keep rich-click optional at import time

from .core import PipelineError, PipelineSettings, configure_logging, get_settings
from .pipeline import (
    Completed,
    DocumentTransformationCoordinator,
    Failed,
    ProcessingStrategy,
    TransformationResult,
)
from .schema import FileSchemaLoader, SchemaDocument

__all__ = [
    "__author__",
    "__version__",
    "Completed",
    "DocumentTransformationCoordinator",
    "Failed",
    "FileSchemaLoader",
    "PipelineError",
    "PipelineSettings",
    "ProcessingStrategy",
    "SchemaDocument",
    "TransformationResult",
    "configure_logging",
    "get_settings",
]
