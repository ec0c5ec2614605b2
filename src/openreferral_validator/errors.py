"""Error codes and exception hierarchy for the validator.

Two kinds of failure are distinguished here:

- Report codes (``ErrorCode``) describe problems found in a specification or
  in a live endpoint. They are recorded in the validation report and never
  raised.
- Exceptions (``ValidatorError`` and subclasses) describe problems with the
  request itself: missing configuration, unreachable or unparsable schema
  documents. Only configuration errors propagate out of the service; the
  others are converted into an invalid report by the service layer.

Example:
    try:
        report = await service.validate(request)
    except ConfigurationError as e:
        print(f"Error [{e.error_code.value}]: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Severity attached to a validation issue."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


class ErrorCode(str, Enum):
    """Standardized codes used in validation reports and exceptions.

    Codes are grouped by where they are produced:
    - specification structure checks
    - schema (JSON Schema) validation of documents and bodies
    - live endpoint testing
    - request configuration and schema loading
    """

    # Specification structure
    MISSING_OPENAPI_VERSION = "MISSING_OPENAPI_VERSION"
    MISSING_INFO = "MISSING_INFO"
    MISSING_TITLE = "MISSING_TITLE"
    MISSING_VERSION = "MISSING_VERSION"
    MISSING_PATHS = "MISSING_PATHS"
    NO_ENDPOINTS = "NO_ENDPOINTS"
    SPEC_VALIDATION_ERROR = "SPEC_VALIDATION_ERROR"
    SCHEMA_VALIDATION_FAILED = "SCHEMA_VALIDATION_FAILED"

    # Document / body validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_JSON = "INVALID_JSON"
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"

    # Endpoint testing
    REQUIRED_ENDPOINT_FAILED = "REQUIRED_ENDPOINT_FAILED"
    OPTIONAL_ENDPOINT_NON_SUCCESS = "OPTIONAL_ENDPOINT_NON_SUCCESS"
    EMPTY_FEED_WARNING = "EMPTY_FEED_WARNING"
    NO_IDS_AVAILABLE = "NO_IDS_AVAILABLE"
    TEST_ERROR = "TEST_ERROR"

    # Request configuration and loading
    INVALID_CONFIG = "INVALID_CONFIG"
    SCHEMA_FETCH_FAILED = "SCHEMA_FETCH_FAILED"
    SCHEMA_PARSE_FAILED = "SCHEMA_PARSE_FAILED"

    @property
    def category(self) -> str:
        """Get the area of the validator that produces this code."""
        if self in _SPECIFICATION_CODES:
            return "specification"
        if self in _DOCUMENT_CODES:
            return "schema"
        if self in _CONFIG_CODES:
            return "configuration"
        return "endpoint"


_SPECIFICATION_CODES = frozenset(
    {
        ErrorCode.MISSING_OPENAPI_VERSION,
        ErrorCode.MISSING_INFO,
        ErrorCode.MISSING_TITLE,
        ErrorCode.MISSING_VERSION,
        ErrorCode.MISSING_PATHS,
        ErrorCode.NO_ENDPOINTS,
        ErrorCode.SPEC_VALIDATION_ERROR,
        ErrorCode.SCHEMA_VALIDATION_FAILED,
    }
)
_DOCUMENT_CODES = frozenset(
    {ErrorCode.VALIDATION_ERROR, ErrorCode.INVALID_JSON, ErrorCode.SCHEMA_VALIDATION_ERROR}
)
_CONFIG_CODES = frozenset(
    {ErrorCode.INVALID_CONFIG, ErrorCode.SCHEMA_FETCH_FAILED, ErrorCode.SCHEMA_PARSE_FAILED}
)


@dataclass
class ErrorContext:
    """Structured context attached to a raised error.

    Attributes:
        url: URL being fetched or validated when the error occurred.
        config_field: Configuration field that failed validation.
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    url: str | None = None
    config_field: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"timestamp": self.timestamp.isoformat()}
        if self.url:
            result["url"] = self.url
        if self.config_field:
            result["field"] = self.config_field
        if self.extra:
            result["extra"] = self.extra
        return result


class ValidatorError(Exception):
    """Base exception for all validator errors.

    Attributes:
        message: Human-readable error message.
        error_code: Code for programmatic handling.
        context: Structured context for debugging.
        cause: Original exception, if any.
    """

    default_code: ErrorCode = ErrorCode.INVALID_CONFIG

    def __init__(
        self,
        message: str,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(ValidatorError):
    """Raised when a validation request cannot be carried out as configured."""

    default_code = ErrorCode.INVALID_CONFIG

    def __init__(
        self,
        message: str,
        field: str | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        context = context or ErrorContext()
        if field:
            context.config_field = field
        super().__init__(message, context=context, cause=cause)


class SchemaFetchError(ValidatorError):
    """Raised when a schema document cannot be retrieved."""

    default_code = ErrorCode.SCHEMA_FETCH_FAILED

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        extra = {"status_code": status_code} if status_code is not None else {}
        super().__init__(message, context=ErrorContext(url=url, extra=extra), cause=cause)
        self.url = url
        self.status_code = status_code


class SchemaParseError(ValidatorError):
    """Raised when a schema document is not valid JSON or YAML."""

    default_code = ErrorCode.SCHEMA_PARSE_FAILED

    def __init__(self, message: str, url: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, context=ErrorContext(url=url), cause=cause)
        self.url = url


__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "ErrorContext",
    "SchemaFetchError",
    "SchemaParseError",
    "Severity",
    "ValidatorError",
]
