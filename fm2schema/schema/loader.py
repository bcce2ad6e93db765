"""Schema loader interface and file-based implementation.

Schemas are JSON Schema documents stored as JSON or YAML. The loader parses
them into ``SchemaDocument`` values and checks the few structural rules the
pipeline depends on before any directive is interpreted.
"""

import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import FileAccessError, SchemaLoadError
from ..core.logging import get_logger
from ..files import FileReader, LocalFileReader
from .document import FRONTMATTER_PART, SchemaDocument

logger = get_logger(__name__)


class SchemaLoader(ABC):
    """Interface for loading schemas."""

    @abstractmethod
    async def load_schema(self, path: str | Path) -> SchemaDocument:
        """Load and check a schema."""
        pass

    @abstractmethod
    async def reload_schema(self) -> SchemaDocument:
        """Reload the most recently loaded schema from its source."""
        pass

    @abstractmethod
    def validate_schema_consistency(self, schema: SchemaDocument) -> list[str]:
        """Validate schema consistency and return errors."""
        pass


class FileSchemaLoader(SchemaLoader):
    """Loads schemas from ``.json``, ``.yaml`` or ``.yml`` files."""

    def __init__(self, reader: FileReader | None = None):
        """Initialize the loader.

        Args:
            reader: File collaborator used to read schema files
        """
        self.reader = reader or LocalFileReader()
        self.last_path: Path | None = None
        self.last_loaded: datetime | None = None

    async def load_schema(self, path: str | Path) -> SchemaDocument:
        """Load a schema file.

        Args:
            path: Location of the schema file

        Returns:
            The parsed schema document

        Raises:
            SchemaLoadError: If the file is unreadable, unparsable or inconsistent
        """
        return self.load_schema_sync(path)

    def load_schema_sync(self, path: str | Path) -> SchemaDocument:
        """Synchronous version of load_schema."""
        schema_path = Path(path)
        try:
            content = self.reader.read(schema_path)
        except FileAccessError as e:
            raise SchemaLoadError(f"Cannot read schema: {e}", cause=e) from e

        definition = parse_schema_text(content, schema_path.suffix)
        schema = SchemaDocument(definition, source=schema_path)

        errors = self.validate_schema_consistency(schema)
        if errors:
            raise SchemaLoadError(
                f"Schema {schema_path} is inconsistent: {'; '.join(errors)}"
            )

        self.last_path = schema_path
        self.last_loaded = datetime.now(UTC)
        logger.debug("Schema loaded", path=str(schema_path))
        return schema

    async def reload_schema(self) -> SchemaDocument:
        """Reload the most recently loaded schema.

        Raises:
            SchemaLoadError: If no schema has been loaded yet
        """
        if self.last_path is None:
            raise SchemaLoadError("No schema has been loaded yet")
        return await self.load_schema(self.last_path)

    def validate_schema_consistency(self, schema: SchemaDocument) -> list[str]:
        """Check the structural rules the pipeline relies on.

        Args:
            schema: Schema to check

        Returns:
            List of error messages, empty when the schema is usable
        """
        errors = []

        for node in schema.iter_property_nodes():
            props = node.definition.get("properties")
            if props is not None and not isinstance(props, dict):
                errors.append(
                    f"'properties' at '{node.path or '<root>'}' must be an object"
                )

            marker = node.definition.get(FRONTMATTER_PART)
            if marker is None:
                continue
            if not isinstance(marker, (bool, str)):
                errors.append(
                    f"{FRONTMATTER_PART} at '{node.path or '<root>'}' must be a boolean or a path"
                )
            elif marker is True and node.type not in (None, "array"):
                errors.append(
                    f"{FRONTMATTER_PART} at '{node.path or '<root>'}' marks a "
                    f"'{node.type}' property; only arrays can collect front matter"
                )

        return errors


def parse_structured_text(content: str, suffix: str = ".json") -> Any:
    """Parse JSON or YAML text depending on the file suffix; any root type.

    Raises:
        SchemaLoadError: If the content is not valid JSON or YAML
    """
    try:
        if suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(content)
        return json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaLoadError(f"Invalid syntax: {e}", cause=e) from e


def parse_schema_text(content: str, suffix: str = ".json") -> dict[str, Any]:
    """Parse schema text, which must be a mapping at the top level.

    Raises:
        SchemaLoadError: If the content cannot be parsed into a mapping
    """
    data = parse_structured_text(content, suffix)
    if not isinstance(data, dict):
        raise SchemaLoadError("Schema must be an object at the top level")
    return data
