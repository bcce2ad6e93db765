"""Template resolution, rendering and output."""

from .output import OutputWriter, serialize
from .renderer import STRUCTURED_FORMATS, RenderedOutput, TemplateRenderer
from .resolution import (
    DEFAULT_OUTPUT_FORMAT,
    ResolvedTemplateConfiguration,
    TemplateConfiguration,
    TemplateResolutionService,
    is_inline_template,
)

__all__ = [
    "DEFAULT_OUTPUT_FORMAT",
    "ResolvedTemplateConfiguration",
    "TemplateConfiguration",
    "TemplateResolutionService",
    "is_inline_template",
    "STRUCTURED_FORMATS",
    "RenderedOutput",
    "TemplateRenderer",
    "OutputWriter",
    "serialize",
]
