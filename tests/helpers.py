"""Shared helpers for validator tests."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

import httpx

API = "http://api.test"
SCHEMAS = "http://schemas.test"


class FakeApi:
    """In-process HTTP API served through ``httpx.MockTransport``.

    Routes are keyed by method and full URL (query string included).
    Unrouted requests get a 404.

    Example:
        >>> api = FakeApi()
        >>> api.get("http://api.test/items", json={"contents": []})
        >>> client = api.client()
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        handler: Callable[[httpx.Request], Any] | None = None,
        *,
        json: Any = None,
        text: str | None = None,
        status: int = 200,
    ) -> FakeApi:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if text is not None:
                    return httpx.Response(status, text=text)
                if json is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=json)

        self.routes[(method.upper(), str(httpx.URL(url)))] = handler
        return self

    def get(self, url: str, handler: Callable[[httpx.Request], Any] | None = None, **kwargs: Any) -> FakeApi:
        return self.add("GET", url, handler, **kwargs)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, str(request.url)))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        response = handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def calls(self, url: str, method: str = "GET") -> int:
        target = str(httpx.URL(url))
        return sum(1 for r in self.requests if r.method == method and str(r.url) == target)

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


def json_response(schema: dict[str, Any]) -> dict[str, Any]:
    """A ``responses`` object whose 200 response has ``schema``."""
    return {"200": {"description": "OK", "content": {"application/json": {"schema": schema}}}}


ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id"],
    "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
}


def make_spec(paths: dict[str, Any], schemas: dict[str, Any] | None = None) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "openapi": "3.1.0",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": paths,
    }
    if schemas:
        spec["components"] = {"schemas": schemas}
    return spec
