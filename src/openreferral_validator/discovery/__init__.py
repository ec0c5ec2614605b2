"""Discovery module - Reads OpenAPI documents into testable structure.

This module:
1. Finds the OpenAPI document for an API (DiscoveryResolver)
2. Expands $ref pointers into self-contained schemas (ReferenceResolver)
3. Groups operations into collection/parameterized endpoint groups
4. Harvests resource IDs from collection responses (IdentifierExtractor)
"""

from openreferral_validator.discovery.endpoint import (
    EndpointDescriptor,
    EndpointGroup,
    group_endpoints,
    iter_operations,
    root_path,
)
from openreferral_validator.discovery.identifiers import IdentifierExtractor
from openreferral_validator.discovery.openapi_url import (
    DiscoveryResolver,
    DiscoveryResult,
    parse_version,
)
from openreferral_validator.discovery.optional import (
    OptionalEndpointResult,
    OptionalEndpointStatus,
    classify_optional_response,
    is_acceptable_optional_response,
    is_optional_endpoint,
    optional_endpoint_category,
)
from openreferral_validator.discovery.ref_resolver import (
    ReferenceResolver,
    ResolutionContext,
    expand_openapi_refs,
)

__all__ = [
    "DiscoveryResolver",
    "DiscoveryResult",
    "EndpointDescriptor",
    "EndpointGroup",
    "IdentifierExtractor",
    "OptionalEndpointResult",
    "OptionalEndpointStatus",
    "ReferenceResolver",
    "ResolutionContext",
    "classify_optional_response",
    "expand_openapi_refs",
    "group_endpoints",
    "is_acceptable_optional_response",
    "is_optional_endpoint",
    "iter_operations",
    "optional_endpoint_category",
    "parse_version",
    "root_path",
]
