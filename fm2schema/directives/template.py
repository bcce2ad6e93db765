"""Handlers for template directives.

Template directives configure rendering rather than data, so processing
leaves data unchanged. Their values are checked here so malformed template
configuration fails at extraction time.
"""

from typing import Any, ClassVar

from .base import PassthroughHandler
from .kinds import PHASE_FORMAT, PHASE_ITEMS_TEMPLATE, PHASE_TEMPLATE, DirectiveKind

OUTPUT_FORMATS = ("json", "yaml", "xml", "markdown")


class TemplateHandler(PassthroughHandler):
    """``x-template``: inline template content or a schema-relative file path."""

    kind = DirectiveKind.TEMPLATE
    priority = PHASE_TEMPLATE

    def validate_value(self, value: Any, target_path: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise self.invalid(
                f"{self.name} must be a non-empty string, got {value!r}", target_path
            )
        # Inline templates keep their whitespace
        return value


class TemplateItemsHandler(PassthroughHandler):
    """``x-template-items``: the data collection the main template renders per item."""

    kind = DirectiveKind.TEMPLATE_ITEMS
    priority = PHASE_ITEMS_TEMPLATE
    dependencies = (DirectiveKind.TEMPLATE,)

    def validate_value(self, value: Any, target_path: str) -> str:
        return self.require_string(value, target_path)


class TemplateFormatHandler(PassthroughHandler):
    """``x-template-format``: explicit output format."""

    kind = DirectiveKind.TEMPLATE_FORMAT
    priority = PHASE_FORMAT
    dependencies = (DirectiveKind.TEMPLATE,)

    ALIASES: ClassVar[dict[str, str]] = {"yml": "yaml", "md": "markdown"}

    def validate_value(self, value: Any, target_path: str) -> str:
        text = self.require_string(value, target_path).lower()
        text = self.ALIASES.get(text, text)
        if text not in OUTPUT_FORMATS:
            raise self.invalid(
                f"{self.name} must be one of {', '.join(OUTPUT_FORMATS)}, got {value!r}",
                target_path,
            )
        return text
