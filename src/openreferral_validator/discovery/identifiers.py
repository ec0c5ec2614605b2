"""IdentifierExtractor - Harvests resource IDs from collection responses."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from openreferral_validator.discovery.json_nodes import first_list, get_dict
from openreferral_validator.discovery.ref_resolver import expand_openapi_refs

logger = logging.getLogger(__name__)

ID_FIELD_NAMES = ("id", "_id", "uid", "uuid", "identifier", "key")
WRAPPER_FIELD_NAMES = ("data", "items", "results", "content", "contents")
_ID_FORMATS = frozenset({"uuid", "guid"})
_ID_DESCRIPTION_HINTS = ("identifier", "unique id", " id ")
_COMPOSITION_KEYWORDS = ("allOf", "anyOf", "oneOf")


def is_id_field(name: str, schema: Any = None) -> bool:
    """Check whether a property looks like a resource identifier."""
    lowered = name.lower()
    if lowered in ID_FIELD_NAMES or lowered.endswith("id"):
        return True
    if not isinstance(schema, dict):
        return False
    fmt = schema.get("format")
    if isinstance(fmt, str) and fmt.lower() in _ID_FORMATS:
        return True
    description = schema.get("description")
    if isinstance(description, str):
        text = description.lower()
        return any(hint in text for hint in _ID_DESCRIPTION_HINTS)
    return False


@dataclass
class SchemaHints:
    """Field names learned from a response schema, in discovery order."""

    id_fields: list[str] = field(default_factory=list)
    collection_fields: list[str] = field(default_factory=list)

    def add_id(self, name: str) -> None:
        if name not in self.id_fields:
            self.id_fields.append(name)

    def add_collection(self, name: str) -> None:
        if name not in self.collection_fields:
            self.collection_fields.append(name)


def collect_schema_hints(schema: Any) -> SchemaHints:
    """Walk a response schema collecting id-like and array-typed properties."""
    hints = SchemaHints()
    _walk(schema, hints, depth=0)
    return hints


def _walk(schema: Any, hints: SchemaHints, depth: int) -> None:
    # Expanded schemas are finite, but guard against pathological nesting.
    if not isinstance(schema, dict) or depth > 32:
        return

    properties = schema.get("properties")
    if isinstance(properties, dict):
        for name, prop in properties.items():
            if is_id_field(name, prop):
                hints.add_id(name)
            if isinstance(prop, dict) and prop.get("type") == "array":
                hints.add_collection(name)
            _walk(prop, hints, depth + 1)

    _walk(schema.get("items"), hints, depth + 1)

    for keyword in _COMPOSITION_KEYWORDS:
        branches = schema.get(keyword)
        if isinstance(branches, list):
            for branch in branches:
                _walk(branch, hints, depth + 1)


def response_schema(operation: Any) -> dict[str, Any] | None:
    return get_dict(operation, "responses", "200", "content", "application/json", "schema")


def _stringify(value: Any) -> str | None:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


class IdentifierExtractor:
    """Extracts candidate resource IDs from a JSON response body.

    The operation's 200 response schema is consulted first to learn which
    fields hold IDs and which hold the item array. Well-known names are used
    when the schema says nothing useful.

    Example::

        extractor = IdentifierExtractor()
        ids = extractor.extract_ids('{"data": [{"id": "1"}]}', operation, spec)
        # ['1']
    """

    def extract_ids(
        self,
        body: Any,
        operation: dict[str, Any] | None = None,
        openapi_document: dict[str, Any] | None = None,
    ) -> list[str]:
        """Return de-duplicated IDs in first-occurrence order.

        Args:
            body: Response body as text, bytes or an already parsed tree.
            operation: The OpenAPI operation that produced the body.
            openapi_document: Document used to expand $refs in the schema.

        Returns:
            Candidate IDs. Empty when nothing could be extracted; this
            method never raises.
        """
        try:
            data = self._parse(body)
            if data is None:
                return []
            hints = self._hints(operation, openapi_document)
            return _dedupe(self._extract(data, hints))
        except Exception:
            logger.warning("Identifier extraction failed", exc_info=True)
            return []

    def extract_id_from_object(self, item: Any, id_fields: list[str] | None = None) -> str | None:
        """Extract a single ID from one object, schema fields first."""
        if not isinstance(item, dict):
            return None
        for name in [*(id_fields or []), *ID_FIELD_NAMES]:
            if name in item:
                value = _stringify(item[name])
                if value is not None:
                    return value
        return None

    @staticmethod
    def _parse(body: Any) -> Any:
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8", errors="replace")
        if isinstance(body, str):
            if not body.strip():
                return None
            try:
                return json.loads(body)
            except json.JSONDecodeError:
                logger.debug("Response body is not JSON, no IDs extracted")
                return None
        return body

    @staticmethod
    def _hints(operation: Any, openapi_document: dict[str, Any] | None) -> SchemaHints:
        schema = response_schema(operation)
        if schema is None:
            return SchemaHints()
        if openapi_document is not None:
            schema = expand_openapi_refs(schema, openapi_document)
        return collect_schema_hints(schema)

    def _extract(self, data: Any, hints: SchemaHints) -> list[str]:
        if isinstance(data, list):
            return self._from_items(data, hints)
        if not isinstance(data, dict):
            return []

        for names in (hints.collection_fields, WRAPPER_FIELD_NAMES):
            items = first_list(data, names)
            if items is not None:
                ids = self._from_items(items, hints)
                if ids:
                    return ids

        single = self.extract_id_from_object(data, hints.id_fields)
        return [single] if single is not None else []

    def _from_items(self, items: list[Any], hints: SchemaHints) -> list[str]:
        ids = []
        for item in items:
            value = self.extract_id_from_object(item, hints.id_fields)
            if value is not None:
                ids.append(value)
        return ids


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


__all__ = [
    "ID_FIELD_NAMES",
    "IdentifierExtractor",
    "SchemaHints",
    "WRAPPER_FIELD_NAMES",
    "collect_schema_hints",
    "is_id_field",
    "response_schema",
]
