"""Schema documents and loading."""

from .document import FRONTMATTER_PART, SchemaDocument, SchemaNode, join_path
from .loader import FileSchemaLoader, SchemaLoader, parse_schema_text, parse_structured_text

__all__ = [
    "FRONTMATTER_PART",
    "SchemaDocument",
    "SchemaNode",
    "join_path",
    "SchemaLoader",
    "FileSchemaLoader",
    "parse_schema_text",
    "parse_structured_text",
]
