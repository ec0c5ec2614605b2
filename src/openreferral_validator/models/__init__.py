"""Request and result models."""

from openreferral_validator.models.requests import (
    BasicAuth,
    DataSourceAuth,
    OpenApiSchemaSource,
    ValidationOptions,
    ValidationRequest,
)
from openreferral_validator.models.results import (
    EndpointStatus,
    EndpointTestResult,
    HttpTestResult,
    QualityMetrics,
    Recommendation,
    ReportMetadata,
    SchemaAnalysis,
    SchemaValidationResult,
    SpecificationValidation,
    TestSummary,
    ValidationIssue,
    ValidationReport,
)

__all__ = [
    "BasicAuth",
    "DataSourceAuth",
    "EndpointStatus",
    "EndpointTestResult",
    "HttpTestResult",
    "OpenApiSchemaSource",
    "QualityMetrics",
    "Recommendation",
    "ReportMetadata",
    "SchemaAnalysis",
    "SchemaValidationResult",
    "SpecificationValidation",
    "TestSummary",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationRequest",
]
