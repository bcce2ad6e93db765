"""Schema directive model, handlers, registry and processor."""

from .base import (
    Directive,
    DirectiveContext,
    DirectiveHandler,
    DirectiveOutcome,
    PassthroughHandler,
)
from .conditions import Condition, ConditionSyntaxError, count_where, parse_condition
from .derived import (
    DerivedAverageHandler,
    DerivedCountHandler,
    DerivedCountWhereHandler,
    DerivedFromHandler,
)
from .kinds import DERIVED_FLATTEN, DERIVED_UNIQUE, DirectiveKind
from .paths import (
    MISSING,
    PathResolver,
    PathSegment,
    PathSyntaxError,
    get_path,
    parse_path,
    resolve,
    set_path,
)
from .processor import (
    DirectiveApplication,
    DirectiveRun,
    DiscoveredDirective,
    SchemaDirectiveProcessor,
)
from .registry import DirectiveRegistry, create_default_registry, default_handlers
from .structural import CollectPatternHandler, FrontmatterPartHandler
from .template import (
    OUTPUT_FORMATS,
    TemplateFormatHandler,
    TemplateHandler,
    TemplateItemsHandler,
)
from .transform import FlattenArraysHandler, JMESPathFilterHandler, flatten_deep

__all__ = [
    # Model
    "Directive",
    "DirectiveContext",
    "DirectiveHandler",
    "DirectiveKind",
    "DirectiveOutcome",
    "PassthroughHandler",
    "DERIVED_FLATTEN",
    "DERIVED_UNIQUE",
    # Paths and conditions
    "MISSING",
    "PathResolver",
    "PathSegment",
    "PathSyntaxError",
    "get_path",
    "parse_path",
    "resolve",
    "set_path",
    "Condition",
    "ConditionSyntaxError",
    "count_where",
    "parse_condition",
    # Handlers
    "FrontmatterPartHandler",
    "CollectPatternHandler",
    "FlattenArraysHandler",
    "JMESPathFilterHandler",
    "DerivedFromHandler",
    "DerivedCountHandler",
    "DerivedAverageHandler",
    "DerivedCountWhereHandler",
    "TemplateHandler",
    "TemplateItemsHandler",
    "TemplateFormatHandler",
    "OUTPUT_FORMATS",
    "flatten_deep",
    # Registry and processing
    "DirectiveRegistry",
    "create_default_registry",
    "default_handlers",
    "SchemaDirectiveProcessor",
    "DirectiveRun",
    "DirectiveApplication",
    "DiscoveredDirective",
]
