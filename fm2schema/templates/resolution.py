"""Template resolution from schema directives.

Turns ``x-template``, ``x-template-items`` and ``x-template-format`` into
concrete template content and an output format. Template values are either
inline content or paths relative to the schema file.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

from ..core.exceptions import ConfigurationError, FileAccessError, InitializationError
from ..core.logging import get_logger
from ..directives.kinds import DirectiveKind
from ..directives.registry import DirectiveRegistry, create_default_registry
from ..files import FileReader, LocalFileReader
from ..schema.document import SchemaDocument

logger = get_logger(__name__)

DEFAULT_OUTPUT_FORMAT = "json"


@dataclass(frozen=True)
class TemplateConfiguration:
    """Template directives as declared in the schema."""

    main_template: str | None = None
    items_template: str | None = None
    output_format: str | None = None


@dataclass(frozen=True)
class ResolvedTemplateConfiguration:
    """Template content ready for rendering.

    ``items_collection`` names the data collection rendered per item; when
    set, ``items_template_content`` is the main template content.
    """

    main_template_content: str
    output_format: str
    items_template_content: str | None = None
    items_collection: str | None = None
    main_template_path: Path | None = None

    @property
    def renders_per_item(self) -> bool:
        return self.items_collection is not None


def is_inline_template(value: str) -> bool:
    """Inline templates contain placeholders or newlines, or start like JSON or Markdown."""
    stripped = value.lstrip()
    return (
        "{{" in value
        or "{%" in value
        or "\n" in value
        or stripped.startswith(("#", "{", "["))
    )


class TemplateResolutionService:
    """Resolves template directives into content and output format.

    Call ``extract_template_configuration`` then ``resolve_template_files``;
    the getters raise InitializationError until both have run.
    """

    EXTENSION_FORMATS: ClassVar[dict[str, str]] = {
        ".json": "json",
        ".yml": "yaml",
        ".yaml": "yaml",
        ".xml": "xml",
        ".md": "markdown",
        ".markdown": "markdown",
    }

    def __init__(
        self,
        reader: FileReader | None = None,
        registry: DirectiveRegistry | None = None,
    ):
        self.reader = reader or LocalFileReader()
        self.registry = registry or create_default_registry()
        self._configuration: TemplateConfiguration | None = None
        self._schema: SchemaDocument | None = None
        self._resolved: ResolvedTemplateConfiguration | None = None

    def extract_template_configuration(self, schema: SchemaDocument) -> TemplateConfiguration:
        """Read template directives from the schema tree.

        Raises:
            ConfigurationError: If x-template is missing or a value is malformed
        """
        main = self._directive(schema, DirectiveKind.TEMPLATE)
        if main is None:
            raise ConfigurationError(
                "x-template missing", directive=DirectiveKind.TEMPLATE.value
            )

        self._configuration = TemplateConfiguration(
            main_template=main,
            items_template=self._directive(schema, DirectiveKind.TEMPLATE_ITEMS),
            output_format=self._directive(schema, DirectiveKind.TEMPLATE_FORMAT),
        )
        self._schema = schema
        self._resolved = None
        return self._configuration

    def resolve_template_files(
        self, schema_path: str | Path | None = None
    ) -> ResolvedTemplateConfiguration:
        """Load template content and settle the output format.

        Args:
            schema_path: Schema file location; defaults to the schema's source

        Raises:
            InitializationError: If no configuration has been extracted
            ConfigurationError: If a template file cannot be read
        """
        config = self._configuration
        if config is None or config.main_template is None:
            raise InitializationError(
                "Template configuration not extracted; call extract_template_configuration first"
            )

        base_dir: Path | None = None
        if schema_path is not None:
            base_dir = Path(schema_path).parent
        elif self._schema is not None:
            base_dir = self._schema.base_dir

        main_value = config.main_template
        if is_inline_template(main_value):
            content = main_value
            template_path = None
        else:
            template_path = self._resolve_path(main_value, base_dir)
            try:
                content = self.reader.read(template_path)
            except FileAccessError as e:
                raise ConfigurationError(
                    f"Cannot load template '{main_value}': {e}",
                    directive=DirectiveKind.TEMPLATE.value,
                    schema_path=str(template_path),
                    cause=e,
                ) from e

        self._resolved = ResolvedTemplateConfiguration(
            main_template_content=content,
            output_format=self.resolve_output_format(config.output_format, main_value),
            items_template_content=content if config.items_template else None,
            items_collection=config.items_template,
            main_template_path=template_path,
        )
        logger.debug(
            "Template resolved",
            template=str(template_path) if template_path else "<inline>",
            output_format=self._resolved.output_format,
            items_collection=config.items_template,
        )
        return self._resolved

    def resolve(self, schema: SchemaDocument) -> ResolvedTemplateConfiguration:
        """Extract and resolve in one call."""
        self.extract_template_configuration(schema)
        return self.resolve_template_files()

    def get_main_template(self) -> str:
        return self._require_resolved().main_template_content

    def get_items_template(self) -> str | None:
        return self._require_resolved().items_template_content

    def get_output_format(self) -> str:
        return self._require_resolved().output_format

    def get_resolved(self) -> ResolvedTemplateConfiguration:
        return self._require_resolved()

    @classmethod
    def resolve_output_format(cls, directive_format: str | None, main_template: str | None) -> str:
        """Explicit directive first, then the template file extension, then json."""
        if directive_format:
            return directive_format
        if main_template and not is_inline_template(main_template):
            suffix = Path(main_template.strip()).suffix.lower()
            if suffix in cls.EXTENSION_FORMATS:
                return cls.EXTENSION_FORMATS[suffix]
        return DEFAULT_OUTPUT_FORMAT

    def _directive(self, schema: SchemaDocument, kind: DirectiveKind) -> Any:
        raw = schema.find_directive(kind.value)
        if raw is None:
            return None
        handler = self.registry.get(kind)
        if handler is None:
            return raw
        return handler.validate_value(raw, "")

    @staticmethod
    def _resolve_path(value: str, base_dir: Path | None) -> Path:
        path = Path(value.strip())
        if path.is_absolute() or base_dir is None:
            return path
        return base_dir / path

    def _require_resolved(self) -> ResolvedTemplateConfiguration:
        if self._resolved is None:
            raise InitializationError(
                "Templates not resolved; call resolve_template_files first"
            )
        return self._resolved
