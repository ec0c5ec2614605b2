"""Tests for authentication headers, the HTTP tester and the ID store."""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest
from helpers import API, FakeApi

from openreferral_validator.models.requests import BasicAuth, DataSourceAuth
from openreferral_validator.testing.auth import (
    ApiKeyAuth,
    BasicAuthHeader,
    BearerTokenAuth,
    build_auth_headers,
)
from openreferral_validator.testing.http import HttpTester
from openreferral_validator.testing.id_store import ExtractedIdStore


class TestAuthHeaders:
    """Tests for building request authentication headers."""

    def test_api_key_default_header(self) -> None:
        assert ApiKeyAuth("k").get_headers() == {"X-API-Key": "k"}
        assert ApiKeyAuth("k", "Api-Key").get_headers() == {"Api-Key": "k"}
        assert ApiKeyAuth("").get_headers() == {}

    def test_bearer(self) -> None:
        assert BearerTokenAuth("t").get_headers() == {"Authorization": "Bearer t"}
        assert BearerTokenAuth(None).get_headers() == {}

    def test_basic(self) -> None:
        headers = BasicAuthHeader(BasicAuth(username="user", password="pass")).get_headers()
        assert headers == {"Authorization": "Basic " + base64.b64encode(b"user:pass").decode()}
        assert BasicAuthHeader(BasicAuth(username="")).get_headers() == {}

    def test_combined_credentials(self) -> None:
        auth = DataSourceAuth(
            api_key="k",
            bearer_token="t",
            basic_auth=BasicAuth(username="u", password="p"),
            custom_headers={"X-Tenant": "acme", "": "x", "X-Blank": "  "},
        )
        headers = build_auth_headers(auth)
        assert headers["X-API-Key"] == "k"
        assert headers["Authorization"].startswith("Basic ")
        assert headers["X-Tenant"] == "acme"
        assert "" not in headers
        assert "X-Blank" not in headers

    def test_no_auth(self) -> None:
        assert build_auth_headers(None) == {}
        assert build_auth_headers(DataSourceAuth()) == {}


class TestHttpTester:
    """Tests for HttpTester.send."""

    @pytest.mark.asyncio
    async def test_records_exchange(self, api: FakeApi) -> None:
        api.get(f"{API}/items", json={"contents": []})
        async with api.client() as client:
            result = await HttpTester(client, user_agent="Tester/1.0").send(
                "get", f"{API}/items", headers={"X-API-Key": "k"}
            )

        assert result.request_method == "GET"
        assert result.response_status == 200
        assert result.is_success
        assert json.loads(result.response_body) == {"contents": []}
        assert result.content_type == "application/json"
        assert result.error_message is None
        assert result.response_time >= result.server_processing >= 0

        sent = api.requests[0]
        assert sent.headers["User-Agent"] == "Tester/1.0"
        assert sent.headers["Accept"] == "application/json"
        assert sent.headers["X-API-Key"] == "k"

    @pytest.mark.asyncio
    async def test_error_status_is_not_success(self, api: FakeApi) -> None:
        async with api.client() as client:
            result = await HttpTester(client).send("GET", f"{API}/missing", tested_id="7")
        assert result.response_status == 404
        assert not result.is_success
        assert result.tested_id == "7"

    @pytest.mark.asyncio
    async def test_transport_error_is_captured(self, api: FakeApi) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        api.get(f"{API}/items", refuse)
        async with api.client() as client:
            result = await HttpTester(client).send("GET", f"{API}/items")

        assert result.response_status is None
        assert not result.is_success
        assert result.error_message.startswith("ConnectError")
        assert "connection refused" in result.error_message

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, api: FakeApi) -> None:
        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200)

        api.get(f"{API}/slow", hang)
        async with api.client() as client:
            task = asyncio.create_task(HttpTester(client).send("GET", f"{API}/slow"))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task


class TestExtractedIdStore:
    """Tests for the ID store."""

    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        store = ExtractedIdStore()
        await store.set("/services", ["a", "b"])
        ids = await store.get("/services")
        ids.append("c")
        assert await store.get("/services") == ["a", "b"]
        assert "/services" in store
        assert len(store) == 1
        assert store.keys() == ["/services"]

    @pytest.mark.asyncio
    async def test_unknown_root_is_empty(self) -> None:
        assert await ExtractedIdStore().get("/nope") == []
