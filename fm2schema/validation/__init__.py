"""Validation results and front-matter rules."""

from .errors import ValidationError, ValidationResult, ValidationWarning
from .rules import (
    FrontmatterValidator,
    ValidationRule,
    ValidationRules,
    ValidationRulesAdjuster,
    rules_from_schema,
)

__all__ = [
    "ValidationError",
    "ValidationResult",
    "ValidationWarning",
    "FrontmatterValidator",
    "ValidationRule",
    "ValidationRules",
    "ValidationRulesAdjuster",
    "rules_from_schema",
]
