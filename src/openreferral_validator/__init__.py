"""OpenReferral Validator - OpenAPI document and live API validation.

Validates an OpenAPI document, then tests the API it describes: collection
endpoints first, then parameterized endpoints using IDs harvested from the
collections.

Quick Start:
    import asyncio
    from openreferral_validator import OpenApiValidationService, ValidationRequest

    service = OpenApiValidationService()
    report = asyncio.run(
        service.validate(ValidationRequest(base_url="https://api.example.org"))
    )
    print(report.is_valid, report.summary.failed_tests)
"""

from __future__ import annotations

from openreferral_validator.config import ValidatorSettings, load_settings
from openreferral_validator.discovery import (
    DiscoveryResolver,
    EndpointDescriptor,
    EndpointGroup,
    IdentifierExtractor,
    ReferenceResolver,
    expand_openapi_refs,
    group_endpoints,
)
from openreferral_validator.errors import (
    ConfigurationError,
    ErrorCode,
    SchemaFetchError,
    SchemaParseError,
    Severity,
    ValidatorError,
)
from openreferral_validator.feeds import (
    FeedValidationService,
    InMemoryFeedStore,
    ServiceFeed,
)
from openreferral_validator.models import (
    DataSourceAuth,
    EndpointStatus,
    EndpointTestResult,
    HttpTestResult,
    TestSummary,
    ValidationIssue,
    ValidationOptions,
    ValidationReport,
    ValidationRequest,
)
from openreferral_validator.service import OpenApiValidationService
from openreferral_validator.testing import EndpointTestOrchestrator, HttpTester
from openreferral_validator.validation import SchemaValidator, validate_specification

__version__ = "1.0.0"

__all__ = [
    "ConfigurationError",
    "DataSourceAuth",
    "DiscoveryResolver",
    "EndpointDescriptor",
    "EndpointGroup",
    "EndpointStatus",
    "EndpointTestOrchestrator",
    "EndpointTestResult",
    "ErrorCode",
    "FeedValidationService",
    "HttpTester",
    "HttpTestResult",
    "IdentifierExtractor",
    "InMemoryFeedStore",
    "OpenApiValidationService",
    "ReferenceResolver",
    "SchemaFetchError",
    "SchemaParseError",
    "SchemaValidator",
    "ServiceFeed",
    "Severity",
    "TestSummary",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationReport",
    "ValidationRequest",
    "ValidatorError",
    "ValidatorSettings",
    "__version__",
    "expand_openapi_refs",
    "group_endpoints",
    "load_settings",
    "validate_specification",
]
