"""Structure detection and strict structural matching."""

from .detector import DEFAULT_COLLECTION_PATH, SchemaStructureDetector
from .matcher import (
    NodeKind,
    StrictStructureMatcher,
    StructureNode,
    find_first_mismatch,
    structures_equal,
)
from .types import FieldPatterns, ProcessingHints, StructureKind, StructureType

__all__ = [
    "DEFAULT_COLLECTION_PATH",
    "SchemaStructureDetector",
    "NodeKind",
    "StrictStructureMatcher",
    "StructureNode",
    "find_first_mismatch",
    "structures_equal",
    "FieldPatterns",
    "ProcessingHints",
    "StructureKind",
    "StructureType",
]
