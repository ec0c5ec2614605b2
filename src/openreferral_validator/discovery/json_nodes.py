"""Typed access to untyped JSON trees.

OpenAPI documents and API responses are handled as plain ``dict``/``list``
trees. These helpers give optional-returning lookups so callers never need
to guard against missing keys or unexpected types.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterator, Sequence
from typing import Any
from urllib.parse import unquote

import yaml

from openreferral_validator.errors import SchemaParseError

_MISSING = object()


def get_path(node: Any, *keys: str | int) -> Any | None:
    """Walk ``keys`` into ``node``, returning None when any step is missing.

    Example:
        >>> get_path({"a": {"b": [1, 2]}}, "a", "b", 1)
        2
    """
    current = node
    for key in keys:
        if isinstance(current, dict):
            current = current.get(key, _MISSING) if isinstance(key, str) else _MISSING
        elif isinstance(current, list) and isinstance(key, int):
            current = current[key] if -len(current) <= key < len(current) else _MISSING
        else:
            return None
        if current is _MISSING:
            return None
    return current


def get_dict(node: Any, *keys: str | int) -> dict[str, Any] | None:
    value = get_path(node, *keys)
    return value if isinstance(value, dict) else None


def get_list(node: Any, *keys: str | int) -> list[Any] | None:
    value = get_path(node, *keys)
    return value if isinstance(value, list) else None


def get_str(node: Any, *keys: str | int) -> str | None:
    value = get_path(node, *keys)
    return value if isinstance(value, str) else None


def get_int(node: Any, *keys: str | int) -> int | None:
    """Read an integer, accepting numeric strings."""
    value = get_path(node, *keys)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def split_pointer(pointer: str) -> list[str]:
    """Split a ``#/a/b`` JSON pointer into decoded segments."""
    body = pointer[1:] if pointer.startswith("#") else pointer
    if not body or body == "/":
        return []
    return [
        unquote(segment).replace("~1", "/").replace("~0", "~")
        for segment in body.lstrip("/").split("/")
    ]


def resolve_pointer(document: Any, pointer: str) -> Any | None:
    """Resolve a JSON pointer against ``document``.

    Object keys and array indices are both supported. Returns None when the
    target does not exist.
    """
    current = document
    for segment in split_pointer(pointer):
        if isinstance(current, dict):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, list):
            try:
                index = int(segment)
            except ValueError:
                return None
            if not 0 <= index < len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def iter_refs(node: Any) -> Iterator[str]:
    """Yield every ``$ref`` string found anywhere in ``node``."""
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            ref = current.get("$ref")
            if isinstance(ref, str):
                yield ref
            stack.extend(current.values())
        elif isinstance(current, list):
            stack.extend(current)


def contains_ref(node: Any, ref: str) -> bool:
    return any(r == ref for r in iter_refs(node))


def deep_copy(node: Any) -> Any:
    return copy.deepcopy(node)


def parse_document(text: str | bytes, source: str | None = None) -> Any:
    """Parse JSON, falling back to YAML.

    Raises:
        SchemaParseError: If the text is neither JSON nor YAML, or is a bare
            scalar.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    try:
        return json.loads(text)
    except json.JSONDecodeError as json_error:
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError as yaml_error:
            raise SchemaParseError(
                f"Document is neither valid JSON nor YAML: {json_error}",
                url=source,
                cause=yaml_error,
            ) from yaml_error
        if not isinstance(parsed, (dict, list)):
            raise SchemaParseError(
                f"Document is not valid JSON: {json_error}", url=source, cause=json_error
            ) from json_error
        return parsed


def first_list(node: dict[str, Any], names: Sequence[str]) -> list[Any] | None:
    """Return the first list-valued entry among ``names``."""
    for name in names:
        value = node.get(name)
        if isinstance(value, list):
            return value
    return None


__all__ = [
    "contains_ref",
    "deep_copy",
    "first_list",
    "get_dict",
    "get_int",
    "get_list",
    "get_path",
    "get_str",
    "iter_refs",
    "parse_document",
    "resolve_pointer",
    "split_pointer",
]
