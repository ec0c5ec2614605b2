"""Result types for a validation run.

The report is a tree of plain dataclasses. ``to_dict()`` on any node renders
it with camelCase keys, which is the shape consumers of the JSON report
expect.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic.alias_generators import to_camel

from openreferral_validator.errors import ErrorCode, Severity


class EndpointStatus(str, Enum):
    """Outcome of testing a single endpoint."""

    NOT_TESTED = "NotTested"
    SKIPPED = "Skipped"
    SUCCESS = "Success"
    WARNING = "Warning"
    FAILED = "Failed"
    ERROR = "Error"
    CANCELLED = "Cancelled"

    @property
    def is_failure(self) -> bool:
        return self in (EndpointStatus.FAILED, EndpointStatus.ERROR)

    @property
    def is_skip(self) -> bool:
        return self in (EndpointStatus.NOT_TESTED, EndpointStatus.SKIPPED)


def _serialize(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {to_camel(f.name): _serialize(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


class _Serializable:
    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass
class ValidationIssue(_Serializable):
    """A single problem found while validating a document or response."""

    path: str
    message: str
    code: ErrorCode
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class SchemaValidationResult(_Serializable):
    is_valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    schema_version: str | None = None
    duration: float = 0.0

    @property
    def error_count(self) -> int:
        return sum(1 for e in self.errors if e.is_error)


@dataclass
class HttpTestResult(_Serializable):
    """One HTTP request made while testing an endpoint.

    Times are in seconds. ``server_processing`` covers the wait for response
    headers and ``content_transfer`` the body download.
    """

    request_url: str
    request_method: str
    response_status: int | None = None
    response_body: str | None = None
    content_type: str | None = None
    response_time: float = 0.0
    server_processing: float = 0.0
    content_transfer: float = 0.0
    is_success: bool = False
    error_message: str | None = None
    validation_result: SchemaValidationResult | None = None
    tested_id: str | None = None

    @property
    def issues(self) -> list[ValidationIssue]:
        return list(self.validation_result.errors) if self.validation_result else []

    def add_issue(self, issue: ValidationIssue, *, invalidate: bool = True) -> None:
        if self.validation_result is None:
            self.validation_result = SchemaValidationResult(is_valid=not invalidate)
        self.validation_result.errors.append(issue)
        if invalidate:
            self.validation_result.is_valid = False


@dataclass
class EndpointTestResult(_Serializable):
    path: str
    method: str
    operation_id: str | None = None
    summary: str | None = None
    is_optional: bool = False
    is_tested: bool = False
    status: EndpointStatus = EndpointStatus.NOT_TESTED
    test_results: list[HttpTestResult] = field(default_factory=list)

    @property
    def request_count(self) -> int:
        return len(self.test_results)

    def __str__(self) -> str:
        return f"{self.method} {self.path} [{self.status.value}]"


@dataclass
class TestSummary(_Serializable):
    __test__ = False

    total_endpoints: int = 0
    tested_endpoints: int = 0
    successful_tests: int = 0
    failed_tests: int = 0
    skipped_tests: int = 0
    warning_tests: int = 0
    total_requests: int = 0
    average_response_time: float = 0.0
    specification_valid: bool = False

    @classmethod
    def from_results(
        cls, results: list[EndpointTestResult], specification_valid: bool
    ) -> TestSummary:
        timings = [r.response_time for e in results for r in e.test_results if r.response_time > 0]
        return cls(
            total_endpoints=len(results),
            tested_endpoints=sum(1 for e in results if e.is_tested),
            successful_tests=sum(1 for e in results if e.status == EndpointStatus.SUCCESS),
            failed_tests=sum(1 for e in results if e.status.is_failure),
            skipped_tests=sum(1 for e in results if e.status.is_skip),
            warning_tests=sum(1 for e in results if e.status == EndpointStatus.WARNING),
            total_requests=sum(len(e.test_results) for e in results),
            average_response_time=sum(timings) / len(timings) if timings else 0.0,
            specification_valid=specification_valid,
        )


@dataclass
class SchemaAnalysis(_Serializable):
    component_count: int = 0
    schema_count: int = 0
    response_count: int = 0
    parameter_count: int = 0
    request_body_count: int = 0
    reference_count: int = 0


@dataclass
class QualityMetrics(_Serializable):
    endpoints_with_description: int = 0
    endpoints_with_summary: int = 0
    endpoints_with_examples: int = 0
    total_parameters: int = 0
    documented_parameters: int = 0
    total_responses: int = 0
    documented_responses: int = 0
    total_schemas: int = 0
    documented_schemas: int = 0
    documentation_coverage: float = 0.0
    quality_score: float = 0.0


@dataclass
class Recommendation(_Serializable):
    category: str
    priority: str
    message: str
    path: str | None = None


@dataclass
class SpecificationValidation(_Serializable):
    is_valid: bool = False
    openapi_version: str | None = None
    title: str | None = None
    version: str | None = None
    endpoint_count: int = 0
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    schema_analysis: SchemaAnalysis = field(default_factory=SchemaAnalysis)
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)
    recommendations: list[Recommendation] = field(default_factory=list)


@dataclass
class ReportMetadata(_Serializable):
    base_url: str | None = None
    schema_url: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    duration: float = 0.0
    user_agent: str = ""
    profile_reason: str | None = None
    spec_title: str | None = None
    spec_version: str | None = None


@dataclass
class ValidationReport(_Serializable):
    """Top-level output of a validation run."""

    is_valid: bool = False
    cancelled: bool = False
    error: str | None = None
    specification_validation: SpecificationValidation | None = None
    endpoint_results: list[EndpointTestResult] = field(default_factory=list)
    summary: TestSummary = field(default_factory=TestSummary)
    metadata: ReportMetadata = field(default_factory=ReportMetadata)

    @property
    def failed_endpoints(self) -> list[EndpointTestResult]:
        return [e for e in self.endpoint_results if e.status.is_failure]


__all__ = [
    "EndpointStatus",
    "EndpointTestResult",
    "HttpTestResult",
    "QualityMetrics",
    "Recommendation",
    "ReportMetadata",
    "SchemaAnalysis",
    "SchemaValidationResult",
    "SpecificationValidation",
    "TestSummary",
    "ValidationIssue",
    "ValidationReport",
]
