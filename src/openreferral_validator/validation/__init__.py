"""Validation of OpenAPI documents and response bodies."""

from openreferral_validator.validation.schema_validator import (
    DRAFT_2020_12,
    SchemaValidator,
    known_dialect,
    normalize_nullable,
)
from openreferral_validator.validation.specification import (
    analyze_quality,
    analyze_schema_structure,
    validate_specification,
)

__all__ = [
    "DRAFT_2020_12",
    "SchemaValidator",
    "analyze_quality",
    "analyze_schema_structure",
    "known_dialect",
    "normalize_nullable",
    "validate_specification",
]
