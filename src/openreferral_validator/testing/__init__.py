"""Testing module - Drives live HTTP tests against an API.

This module:
1. Sends requests with timing breakdowns (HttpTester)
2. Builds authentication headers from request credentials
3. Follows page-number pagination
4. Orchestrates collection and parameterized phases per endpoint group
"""

from openreferral_validator.testing.auth import (
    ApiKeyAuth,
    BasicAuthHeader,
    BearerTokenAuth,
    build_auth_headers,
)
from openreferral_validator.testing.http import HttpTester
from openreferral_validator.testing.id_store import ExtractedIdStore
from openreferral_validator.testing.orchestrator import (
    EndpointTestOrchestrator,
    composite_status,
    substitute_path,
)
from openreferral_validator.testing.pagination import (
    PageInfo,
    follow_up_pages,
    has_page_parameter,
    parse_page_info,
)

__all__ = [
    "ApiKeyAuth",
    "BasicAuthHeader",
    "BearerTokenAuth",
    "EndpointTestOrchestrator",
    "ExtractedIdStore",
    "HttpTester",
    "PageInfo",
    "build_auth_headers",
    "composite_status",
    "follow_up_pages",
    "has_page_parameter",
    "parse_page_info",
    "substitute_path",
]
