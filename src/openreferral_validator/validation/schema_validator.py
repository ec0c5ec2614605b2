"""SchemaValidator - JSON Schema validation of response bodies and documents.

Constraint checking is done by ``jsonschema``; this module picks the draft,
adapts OpenAPI 3.0 ``nullable`` to JSON Schema, and turns jsonschema errors
into ``ValidationIssue`` records for the report.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import jsonschema
from jsonschema.validators import validator_for
from referencing.exceptions import Unresolvable

from openreferral_validator.errors import ErrorCode, Severity
from openreferral_validator.models.results import SchemaValidationResult, ValidationIssue

logger = logging.getLogger(__name__)

DRAFT_2020_12 = "https://json-schema.org/draft/2020-12/schema"

KNOWN_DIALECTS = {
    "https://json-schema.org/draft/2020-12/schema": DRAFT_2020_12,
    "https://json-schema.org/draft/2019-09/schema": "https://json-schema.org/draft/2019-09/schema",
    "http://json-schema.org/draft-07/schema#": "http://json-schema.org/draft-07/schema#",
    "http://json-schema.org/draft-06/schema#": "http://json-schema.org/draft-06/schema#",
    "http://json-schema.org/draft-04/schema#": "http://json-schema.org/draft-04/schema#",
}

DEFAULT_MAX_ERRORS = 100


def known_dialect(dialect: Any) -> str:
    """Map a declared ``jsonSchemaDialect`` onto a supported draft URI."""
    if isinstance(dialect, str):
        normalized = dialect.strip()
        if normalized in KNOWN_DIALECTS:
            return KNOWN_DIALECTS[normalized]
        if not normalized.endswith("#") and f"{normalized}#" in KNOWN_DIALECTS:
            return KNOWN_DIALECTS[f"{normalized}#"]
    return DRAFT_2020_12


def normalize_nullable(schema: Any) -> Any:
    """Rewrite OpenAPI 3.0 ``nullable: true`` as a JSON Schema null type."""
    if isinstance(schema, list):
        return [normalize_nullable(item) for item in schema]
    if not isinstance(schema, dict):
        return schema
    result = {key: normalize_nullable(value) for key, value in schema.items()}
    if result.get("nullable") is True:
        current = result.get("type")
        if isinstance(current, str):
            result["type"] = [current, "null"]
        elif isinstance(current, list) and "null" not in current:
            result["type"] = [*current, "null"]
    return result


def _issue_path(error: jsonschema.ValidationError) -> str:
    return error.json_path


def _schema_version(schema: dict[str, Any]) -> str:
    declared = schema.get("$schema")
    return declared if isinstance(declared, str) else DRAFT_2020_12


class SchemaValidator:
    """Validates JSON data against a resolved JSON Schema.

    Example::

        validator = SchemaValidator()
        result = validator.validate({"id": 1}, {"type": "object", "required": ["name"]})
        assert not result.is_valid

    Args:
        max_errors: Maximum number of issues reported per validation.
    """

    def __init__(self, max_errors: int = DEFAULT_MAX_ERRORS) -> None:
        self.max_errors = max_errors

    def validate(self, data: Any, schema: dict[str, Any]) -> SchemaValidationResult:
        """Validate already-parsed ``data`` against ``schema``.

        Strings are treated as JSON string values. Use ``validate_text`` for
        a raw response body.

        Args:
            data: Parsed JSON value.
            schema: A self-contained schema (refs already expanded).

        Returns:
            Result with one issue per violation. A broken schema yields a
            ``SCHEMA_VALIDATION_ERROR`` issue rather than raising.
        """
        started = time.perf_counter()
        version = _schema_version(schema)

        try:
            cls = validator_for(schema, default=jsonschema.Draft202012Validator)
            cls.check_schema(schema)
            validator = cls(normalize_nullable(schema))
            errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
        except (jsonschema.SchemaError, jsonschema.exceptions.UnknownType, Unresolvable) as e:
            logger.warning("Schema is not a valid JSON Schema: %s", getattr(e, "message", e))
            return SchemaValidationResult(
                is_valid=False,
                errors=[
                    ValidationIssue(
                        path="$",
                        message=f"Schema validation error: {getattr(e, 'message', e)}",
                        code=ErrorCode.SCHEMA_VALIDATION_ERROR,
                    )
                ],
                schema_version=version,
                duration=time.perf_counter() - started,
            )

        issues = [
            ValidationIssue(
                path=_issue_path(error),
                message=error.message,
                code=ErrorCode.VALIDATION_ERROR,
                severity=Severity.ERROR,
            )
            for error in errors[: self.max_errors]
        ]
        return SchemaValidationResult(
            is_valid=not issues,
            errors=issues,
            schema_version=version,
            duration=time.perf_counter() - started,
        )

    def validate_text(self, text: str | bytes, schema: dict[str, Any]) -> SchemaValidationResult:
        """Parse ``text`` as JSON and validate the result against ``schema``.

        Unparsable text yields an ``INVALID_JSON`` issue.
        """
        started = time.perf_counter()
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug("Body is not valid JSON: %s", e)
            return SchemaValidationResult(
                is_valid=False,
                errors=[
                    ValidationIssue(
                        path="$",
                        message=f"Invalid JSON: {e}",
                        code=ErrorCode.INVALID_JSON,
                    )
                ],
                schema_version=_schema_version(schema),
                duration=time.perf_counter() - started,
            )
        return self.validate(data, schema)

    def validate_against_dialect(
        self, document: Any, dialect: str | None = None
    ) -> SchemaValidationResult:
        """Check ``document`` against the meta-schema of a JSON Schema dialect.

        Used for the structural check of an OpenAPI document whose
        ``jsonSchemaDialect`` is one of the known drafts.
        """
        uri = known_dialect(dialect)
        cls = validator_for({"$schema": uri}, default=jsonschema.Draft202012Validator)
        return self.validate(document, dict(cls.META_SCHEMA))


__all__ = [
    "DRAFT_2020_12",
    "KNOWN_DIALECTS",
    "SchemaValidator",
    "known_dialect",
    "normalize_nullable",
]
