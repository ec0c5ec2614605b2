"""ReferenceResolver - Expands $ref pointers into self-contained documents."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

import httpx

from openreferral_validator.discovery.json_nodes import (
    contains_ref,
    deep_copy,
    parse_document,
    resolve_pointer,
)
from openreferral_validator.errors import SchemaFetchError, SchemaParseError

logger = logging.getLogger(__name__)

_EXTERNAL_EXTENSIONS = (".json", ".yaml", ".yml")

# Replaces a cycle edge during OpenAPI-context expansion.
PERMISSIVE_SCHEMA: dict[str, Any] = {"type": "object"}


def _stub(ref: str) -> dict[str, Any]:
    return {"$ref": ref}


def is_internal_ref(ref: str) -> bool:
    return ref == "#" or ref.startswith("#/")


def is_external_ref(ref: str) -> bool:
    """Check whether ``ref`` points outside the current document.

    External references are absolute URLs, or relative paths that name a
    schema file or contain a path separator.
    """
    if ref.startswith("#"):
        return False
    if ref.startswith(("http://", "https://")):
        return True
    path = ref.split("#", 1)[0].lower()
    return any(ext in path for ext in _EXTERNAL_EXTENSIONS) or "/" in ref


@dataclass
class ResolutionContext:
    """State for a single top-level ``resolve`` call.

    Attributes:
        root: Document that internal pointers are resolved against. Switches
            to the fetched document while its body is being resolved.
        base_uri: URI that relative external references are joined against.
        cache: Absolute reference key to fully resolved subtree.
        documents: Raw fetched documents by absolute URL.
        in_progress: Reference keys currently being expanded.
    """

    root: Any
    base_uri: str | None = None
    cache: dict[str, Any] = field(default_factory=dict)
    documents: dict[str, Any] = field(default_factory=dict)
    in_progress: set[str] = field(default_factory=set)

    def pointer_key(self, pointer: str) -> str:
        return f"{self.base_uri or ''}{pointer}"


class ReferenceResolver:
    """Recursively expands internal and external $ref pointers.

    Internal references (``#/components/schemas/...``) are resolved against
    the document being resolved. External references (absolute URLs or
    relative schema paths) are fetched over HTTP, joined against the URI of
    the document that contains them.

    A reference that cannot be resolved, or that would recurse forever, is
    left in place as a ``{"$ref": ...}`` stub. Resolution never fails as a
    whole because of one bad reference.

    Each ``resolve`` call gets its own cache, so one resolver can be shared by
    concurrent validations.

    Example::

        async with httpx.AsyncClient() as client:
            resolver = ReferenceResolver(client)
            spec = await resolver.resolve(raw_spec, base_uri=spec_url)

    Args:
        client: HTTP client for external fetches. When omitted a client is
            created for the duration of each call.
        headers: Headers sent with every fetch (schema host authentication).
        timeout: Timeout in seconds for each fetch.
        cancel_event: Once set, no further external documents are fetched
            and their references stay unexpanded.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._client = client
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._cancel_event = cancel_event

    async def resolve(self, document: Any, base_uri: str | None = None) -> Any:
        """Return a copy of ``document`` with every resolvable $ref expanded.

        Args:
            document: Parsed JSON tree. Never mutated.
            base_uri: URI the document was loaded from, for relative refs.

        Returns:
            The resolved tree.
        """
        context = ResolutionContext(root=document, base_uri=base_uri)
        if self._client is not None:
            return await self._resolve_node(document, context, self._client)
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            return await self._resolve_node(document, context, client)

    async def resolve_text(self, text: str | bytes, base_uri: str | None = None) -> Any:
        """Parse JSON or YAML text and resolve it.

        Raises:
            SchemaParseError: If the text cannot be parsed.
        """
        return await self.resolve(parse_document(text, base_uri), base_uri=base_uri)

    async def fetch_document(self, url: str, client: httpx.AsyncClient | None = None) -> Any:
        """Fetch and parse a JSON or YAML document.

        Raises:
            SchemaFetchError: On transport errors or a non-2xx status.
            SchemaParseError: If the body cannot be parsed.
        """
        if client is None and self._client is None:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as own:
                return await self._fetch(url, own)
        return await self._fetch(url, client or self._client)  # type: ignore[arg-type]

    async def _fetch(self, url: str, client: httpx.AsyncClient) -> Any:
        logger.debug("Fetching schema document %s", url)
        try:
            response = await client.get(url, headers=self._headers, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise SchemaFetchError(f"Failed to fetch {url}: {e}", url=url, cause=e) from e
        if not response.is_success:
            raise SchemaFetchError(
                f"Failed to fetch {url}: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return parse_document(response.content, url)

    async def _resolve_node(
        self, node: Any, context: ResolutionContext, client: httpx.AsyncClient
    ) -> Any:
        if isinstance(node, list):
            return [await self._resolve_node(item, context, client) for item in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if not isinstance(ref, str):
            return {
                key: await self._resolve_node(value, context, client)
                for key, value in node.items()
            }

        if is_internal_ref(ref):
            resolved = await self._resolve_internal(ref, context, client)
        elif is_external_ref(ref):
            resolved = await self._resolve_external(ref, context, client)
        else:
            logger.debug("Leaving unsupported reference %r in place", ref)
            resolved = _stub(ref)

        siblings = {key: value for key, value in node.items() if key != "$ref"}
        if not siblings or not isinstance(resolved, dict):
            return resolved

        merged = dict(resolved)
        for key, value in siblings.items():
            merged[key] = await self._resolve_node(value, context, client)
        return merged

    async def _resolve_internal(
        self, pointer: str, context: ResolutionContext, client: httpx.AsyncClient
    ) -> Any:
        key = context.pointer_key(pointer)
        if key in context.in_progress:
            logger.warning("Circular reference detected at %s, leaving unexpanded", pointer)
            return _stub(pointer)
        if key in context.cache:
            return deep_copy(context.cache[key])

        target = resolve_pointer(context.root, pointer)
        if target is None:
            logger.warning(
                "Reference target not found: %s", pointer, extra={"data": {"base_uri": context.base_uri}}
            )
            return _stub(pointer)
        if contains_ref(target, pointer):
            logger.debug("Self-referencing schema at %s, leaving unexpanded", pointer)
            return _stub(pointer)

        context.in_progress.add(key)
        try:
            resolved = await self._resolve_node(deep_copy(target), context, client)
        finally:
            context.in_progress.discard(key)

        context.cache[key] = resolved
        return deep_copy(resolved)

    async def _resolve_external(
        self, ref: str, context: ResolutionContext, client: httpx.AsyncClient
    ) -> Any:
        location, _, fragment = ref.partition("#")
        url = urljoin(context.base_uri, location) if context.base_uri else location
        key = f"{url}#{fragment}" if fragment else url

        if key in context.in_progress:
            logger.warning("Circular external reference detected at %s, leaving unexpanded", key)
            return _stub(ref)
        if key in context.cache:
            return deep_copy(context.cache[key])
        if not url.startswith(("http://", "https://")):
            logger.warning("Cannot fetch relative reference %r without an HTTP base URI", ref)
            return _stub(ref)

        document = context.documents.get(url)
        if document is None:
            if self._cancel_event is not None and self._cancel_event.is_set():
                logger.debug("Cancelled, not fetching external reference %s", ref)
                return _stub(ref)
            try:
                document = await self._fetch(url, client)
            except (SchemaFetchError, SchemaParseError) as e:
                logger.warning("Failed to resolve external reference %s: %s", ref, e.message)
                return _stub(ref)
            context.documents[url] = document

        target = resolve_pointer(document, f"#{fragment}") if fragment else document
        if target is None:
            logger.warning("Fragment %r not found in %s", fragment, url)
            return _stub(ref)

        context.in_progress.add(key)
        previous_base, previous_root = context.base_uri, context.root
        context.base_uri, context.root = url, document
        try:
            resolved = await self._resolve_node(deep_copy(target), context, client)
        finally:
            context.base_uri, context.root = previous_base, previous_root
            context.in_progress.discard(key)

        context.cache[key] = resolved
        return deep_copy(resolved)


def expand_openapi_refs(schema: Any, openapi_document: dict[str, Any]) -> Any:
    """Expand internal references in ``schema`` against ``openapi_document``.

    Used to validate one response body against one operation's schema
    without resolving the whole document. Only ``#/...`` references are
    expanded and nothing is fetched. A reference back into a schema that is
    already being expanded becomes ``{"type": "object"}`` so the result is
    always finite. Unresolvable references are kept as they are.

    Args:
        schema: Schema fragment taken from the document. Never mutated.
        openapi_document: Full OpenAPI document the pointers refer into.

    Returns:
        A new, self-contained schema.
    """
    return _expand(schema, openapi_document, set())


def _expand(node: Any, document: dict[str, Any], visiting: set[str]) -> Any:
    if isinstance(node, list):
        return [_expand(item, document, visiting) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if not (isinstance(ref, str) and ref.startswith("#/")):
        return {key: _expand(value, document, visiting) for key, value in node.items()}

    if ref in visiting:
        return dict(PERMISSIVE_SCHEMA)

    target = resolve_pointer(document, ref)
    if target is None:
        logger.debug("Could not resolve %s in OpenAPI document", ref)
        return deep_copy(node)

    visiting.add(ref)
    try:
        expanded = _expand(target, document, visiting)
        if isinstance(expanded, dict):
            for key, value in node.items():
                if key != "$ref":
                    expanded[key] = _expand(value, document, visiting)
    finally:
        visiting.discard(ref)
    return expanded


__all__ = [
    "PERMISSIVE_SCHEMA",
    "ReferenceResolver",
    "ResolutionContext",
    "expand_openapi_refs",
    "is_external_ref",
    "is_internal_ref",
]
