"""Optional endpoint policy.

An operation tagged ``Optional`` (any case) may be left unimplemented by an
API. Such endpoints are tested, but a 404/501/503 from them is reported as a
warning rather than a failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options", "trace")
OPTIONAL_TAG = "optional"
NOT_IMPLEMENTED_STATUSES = frozenset({404, 501, 503})


class OptionalEndpointStatus(str, Enum):
    REQUIRED = "Required"
    IMPLEMENTED = "Implemented"
    NOT_IMPLEMENTED = "NotImplemented"
    ERROR = "Error"


@dataclass(frozen=True)
class OptionalEndpointResult:
    """Classification of one response from a possibly-optional endpoint."""

    status: OptionalEndpointStatus
    is_valid: bool
    status_code: int
    message: str
    requires_schema_validation: bool = False
    category: str | None = None


def _tags(operation: Any) -> list[str]:
    tags = operation.get("tags") if isinstance(operation, dict) else None
    if not isinstance(tags, list):
        return []
    return [t for t in tags if isinstance(t, str)]


def _operations(path_item: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        op for key, op in path_item.items() if key.lower() in HTTP_METHODS and isinstance(op, dict)
    ]


def is_optional_endpoint(node: Any) -> bool:
    """Check whether an operation or path item is tagged Optional.

    Args:
        node: An operation object (its own tags are checked) or a path item
            (the tags of every operation under it are checked).
    """
    if not isinstance(node, dict):
        return False
    if any(t.lower() == OPTIONAL_TAG for t in _tags(node)):
        return True
    return any(
        t.lower() == OPTIONAL_TAG for op in _operations(node) for t in _tags(op)
    )


def optional_endpoint_category(path_item: Any) -> str | None:
    """Return the first non-Optional tag of a path item's operations.

    Falls back to ``"Optional"`` when that is the only tag, and None when no
    operation has tags.
    """
    if not isinstance(path_item, dict):
        return None
    seen_optional = False
    for op in _operations(path_item):
        for tag in _tags(op):
            if tag.lower() == OPTIONAL_TAG:
                seen_optional = True
            else:
                return tag
    return "Optional" if seen_optional else None


def is_acceptable_optional_response(status_code: int, is_optional: bool) -> bool:
    return is_optional and status_code in NOT_IMPLEMENTED_STATUSES


def classify_optional_response(status_code: int, path_item: Any) -> OptionalEndpointResult:
    """Classify a response status for an endpoint that may be optional."""
    optional = is_optional_endpoint(path_item)
    category = optional_endpoint_category(path_item) if optional else None

    if not optional:
        ok = 200 <= status_code < 300
        return OptionalEndpointResult(
            status=OptionalEndpointStatus.REQUIRED,
            is_valid=ok,
            status_code=status_code,
            message=(
                "Required endpoint responded successfully"
                if ok
                else f"Required endpoint returned status {status_code}"
            ),
            requires_schema_validation=ok,
        )

    if 200 <= status_code < 300:
        return OptionalEndpointResult(
            status=OptionalEndpointStatus.IMPLEMENTED,
            is_valid=True,
            status_code=status_code,
            message="Optional endpoint is implemented",
            requires_schema_validation=True,
            category=category,
        )

    if is_acceptable_optional_response(status_code, optional):
        return OptionalEndpointResult(
            status=OptionalEndpointStatus.NOT_IMPLEMENTED,
            is_valid=True,
            status_code=status_code,
            message=(
                f"Optional endpoint not implemented (status {status_code}), "
                "which is acceptable"
            ),
            category=category,
        )

    return OptionalEndpointResult(
        status=OptionalEndpointStatus.ERROR,
        is_valid=False,
        status_code=status_code,
        message=f"Optional endpoint returned unexpected status {status_code}",
        category=category,
    )


__all__ = [
    "HTTP_METHODS",
    "NOT_IMPLEMENTED_STATUSES",
    "OptionalEndpointResult",
    "OptionalEndpointStatus",
    "classify_optional_response",
    "is_acceptable_optional_response",
    "is_optional_endpoint",
    "optional_endpoint_category",
]
