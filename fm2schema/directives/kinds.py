"""The closed set of schema directives the pipeline understands."""

from enum import Enum


class DirectiveKind(str, Enum):
    """Every supported ``x-*`` schema directive.

    Adding a member without registering a handler for it makes
    ``create_default_registry`` fail with a MissingHandlerError.
    """

    FRONTMATTER_PART = "x-frontmatter-part"
    COLLECT_PATTERN = "x-collect-pattern"
    FLATTEN_ARRAYS = "x-flatten-arrays"
    JMESPATH_FILTER = "x-jmespath-filter"
    DERIVED_FROM = "x-derived-from"
    DERIVED_COUNT = "x-derived-count"
    DERIVED_AVERAGE = "x-derived-average"
    DERIVED_COUNT_WHERE = "x-derived-count-where"
    TEMPLATE = "x-template"
    TEMPLATE_ITEMS = "x-template-items"
    TEMPLATE_FORMAT = "x-template-format"

    @classmethod
    def from_key(cls, key: str) -> "DirectiveKind | None":
        try:
            return cls(key)
        except ValueError:
            return None


# Modifier keys read alongside x-derived-from on the same schema node
DERIVED_UNIQUE = "x-derived-unique"
DERIVED_FLATTEN = "x-derived-flatten"

# Processing phases, lower runs first
PHASE_STRUCTURE = 1
PHASE_COLLECTION = 2
PHASE_FLATTENING = 3
PHASE_FILTERING = 4
PHASE_DERIVATION = 6
PHASE_TEMPLATE = 8
PHASE_ITEMS_TEMPLATE = 9
PHASE_FORMAT = 10
