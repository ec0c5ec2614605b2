"""Endpoint grouping - Partitions OpenAPI paths by root path."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from openreferral_validator.discovery.optional import HTTP_METHODS, is_optional_endpoint


def is_path_parameter(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def root_path(path: str) -> str:
    """Truncate a path template before its first ``{param}`` segment.

    Example:
        >>> root_path("/services/{id}/locations")
        '/services'
        >>> root_path("/{id}")
        '/'
    """
    kept: list[str] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if is_path_parameter(segment):
            break
        kept.append(segment)
    return "/" + "/".join(kept) if kept else "/"


@dataclass(frozen=True)
class EndpointDescriptor:
    """One operation on one path, e.g. ``GET /services/{id}``.

    Attributes:
        path: URL path template.
        method: HTTP method in uppercase.
        operation: The OpenAPI operation object.
        path_item: The enclosing path item (path-level parameters and tags).
    """

    path: str
    method: str
    operation: dict[str, Any] = field(default_factory=dict, compare=False)
    path_item: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_parameterized(self) -> bool:
        return "{" in self.path

    @property
    def is_optional(self) -> bool:
        return is_optional_endpoint(self.operation) or is_optional_endpoint(self.path_item)

    @property
    def root_path(self) -> str:
        return root_path(self.path)

    @property
    def operation_id(self) -> str | None:
        value = self.operation.get("operationId")
        return value if isinstance(value, str) else None

    @property
    def summary(self) -> str | None:
        value = self.operation.get("summary")
        return value if isinstance(value, str) else None

    @property
    def parameters(self) -> list[dict[str, Any]]:
        """Path-level parameters followed by operation-level parameters."""
        merged: list[dict[str, Any]] = []
        for source in (self.path_item, self.operation):
            params = source.get("parameters")
            if isinstance(params, list):
                merged.extend(p for p in params if isinstance(p, dict))
        return merged

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


@dataclass
class EndpointGroup:
    """Endpoints sharing a root path.

    Collection endpoints are tested first so their responses can supply IDs
    for the parameterized endpoints.
    """

    root_path: str
    collection_endpoints: list[EndpointDescriptor] = field(default_factory=list)
    parameterized_endpoints: list[EndpointDescriptor] = field(default_factory=list)

    @property
    def endpoints(self) -> list[EndpointDescriptor]:
        return self.collection_endpoints + self.parameterized_endpoints

    def __len__(self) -> int:
        return len(self.collection_endpoints) + len(self.parameterized_endpoints)


def iter_operations(paths: Any) -> list[EndpointDescriptor]:
    """List every (path, method) operation in a paths object.

    Only recognized HTTP method keys are considered; path-level keys such as
    ``parameters`` or ``summary`` are skipped, as are non-object entries.
    """
    if not isinstance(paths, dict):
        return []
    descriptors: list[EndpointDescriptor] = []
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            descriptors.append(
                EndpointDescriptor(
                    path=path, method=method.upper(), operation=operation, path_item=path_item
                )
            )
    return descriptors


def group_endpoints(paths: Any) -> list[EndpointGroup]:
    """Partition a paths object into endpoint groups by root path.

    Collection endpoints are non-parameterized GETs; parameterized endpoints
    are operations of any method on a path containing ``{``. Other
    operations (non-parameterized writes) belong to no group. Groups keep
    the order in which their root path first appears, and empty groups are
    dropped.

    Args:
        paths: The ``paths`` object of an OpenAPI document.

    Returns:
        Ordered list of non-empty groups.
    """
    groups: dict[str, EndpointGroup] = {}
    for descriptor in iter_operations(paths):
        group = groups.setdefault(descriptor.root_path, EndpointGroup(descriptor.root_path))
        if descriptor.is_parameterized:
            group.parameterized_endpoints.append(descriptor)
        elif descriptor.method == "GET":
            group.collection_endpoints.append(descriptor)
    return [group for group in groups.values() if len(group) > 0]


__all__ = [
    "EndpointDescriptor",
    "EndpointGroup",
    "group_endpoints",
    "is_path_parameter",
    "iter_operations",
    "root_path",
]
