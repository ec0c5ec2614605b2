"""End-to-end tests for OpenApiValidationService."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
from helpers import API, ITEM_SCHEMA, SCHEMAS, FakeApi, json_response, make_spec

from openreferral_validator.config.settings import ValidatorSettings
from openreferral_validator.errors import ConfigurationError
from openreferral_validator.models.requests import (
    DataSourceAuth,
    OpenApiSchemaSource,
    ValidationOptions,
    ValidationRequest,
)
from openreferral_validator.models.results import EndpointStatus, ValidationReport
from openreferral_validator.service import OpenApiValidationService

SCHEMA_URL = f"{SCHEMAS}/openapi.json"


def items_spec() -> dict[str, Any]:
    page = {
        "type": "object",
        "properties": {
            "total_pages": {"type": "integer"},
            "contents": {"type": "array", "items": {"$ref": "#/components/schemas/Item"}},
        },
    }
    return make_spec(
        {
            "/items": {
                "get": {
                    "parameters": [{"name": "page", "in": "query"}],
                    "responses": json_response(page),
                }
            },
            "/items/{id}": {
                "get": {
                    "parameters": [{"name": "id", "in": "path", "required": True}],
                    "responses": json_response({"$ref": "#/components/schemas/Item"}),
                }
            },
        },
        schemas={"Item": ITEM_SCHEMA},
    )


def serve_items(api: FakeApi, *, detail: Any = None) -> None:
    page = {"total_pages": 3, "contents": [{"id": "a"}, {"id": "b"}]}
    for n in (1, 2, 3):
        api.get(f"{API}/items?page={n}", json=page)
    api.get(f"{API}/items/a", detail, json={"id": "a"})
    api.get(f"{API}/items/b", json={"id": "b"})


def request(**kwargs: Any) -> ValidationRequest:
    kwargs.setdefault("open_api_schema", OpenApiSchemaSource(url=SCHEMA_URL))
    kwargs.setdefault("base_url", API)
    return ValidationRequest(**kwargs)


async def validate(
    api: FakeApi,
    validation_request: ValidationRequest | dict[str, Any],
    cancel_event: asyncio.Event | None = None,
) -> ValidationReport:
    settings = ValidatorSettings(specification_base_url=f"{SCHEMAS}/")
    async with api.client() as client:
        service = OpenApiValidationService(settings, client=client)
        return await service.validate(validation_request, cancel_event)


class TestFullRun:
    """Tests for complete validation runs."""

    @pytest.mark.asyncio
    async def test_valid_api(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api)

        report = await validate(api, request())

        assert report.error is None
        assert report.is_valid
        assert not report.cancelled
        assert report.specification_validation.is_valid
        assert [e.status for e in report.endpoint_results] == [
            EndpointStatus.SUCCESS,
            EndpointStatus.SUCCESS,
        ]
        assert report.summary.total_endpoints == 2
        assert report.summary.tested_endpoints == 2
        assert report.summary.successful_tests == 2
        assert report.summary.total_requests == 5
        assert report.summary.specification_valid
        assert report.metadata.schema_url == SCHEMA_URL
        assert report.metadata.spec_title == "Test API"
        assert report.metadata.spec_version == "1.0.0"
        assert report.metadata.duration > 0

    @pytest.mark.asyncio
    async def test_accepts_camel_case_dict(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())

        report = await validate(
            api,
            {"openApiSchema": {"url": SCHEMA_URL}, "options": {"testEndpoints": False}},
        )

        assert report.is_valid
        assert report.endpoint_results == []
        assert api.urls() == [SCHEMA_URL]

    @pytest.mark.asyncio
    async def test_failed_endpoint_invalidates_report(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api, detail=lambda request: httpx.Response(500))

        report = await validate(api, request())

        assert not report.is_valid
        assert report.summary.failed_tests == 1
        assert [str(e) for e in report.failed_endpoints] == ["GET /items/{id} [Failed]"]

    @pytest.mark.asyncio
    async def test_spec_warnings_invalidate_report(self, api: FakeApi) -> None:
        spec = items_spec()
        del spec["info"]["version"]
        api.get(SCHEMA_URL, json=spec)

        report = await validate(api, request(options=ValidationOptions(test_endpoints=False)))

        assert not report.is_valid
        assert not report.summary.specification_valid

    @pytest.mark.asyncio
    async def test_external_refs_are_resolved(self, api: FakeApi) -> None:
        spec = items_spec()
        spec["components"]["schemas"]["Item"] = {"$ref": "item.json"}
        api.get(SCHEMA_URL, json=spec)
        api.get(f"{SCHEMAS}/item.json", json=ITEM_SCHEMA)
        serve_items(api)

        report = await validate(api, request())

        assert report.is_valid
        assert api.calls(f"{SCHEMAS}/item.json") == 1

    @pytest.mark.asyncio
    async def test_reference_count_uses_fetched_document(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api)

        report = await validate(api, request(options=ValidationOptions(test_endpoints=False)))

        assert report.specification_validation is not None
        assert report.specification_validation.schema_analysis.reference_count == 2


class TestSchemaUrl:
    """Tests for locating and fetching the OpenAPI document."""

    @pytest.mark.asyncio
    async def test_discovers_schema_from_base_url(self, api: FakeApi) -> None:
        api.get(API, json={"version": "HSDS-UK-3.0"})
        api.get(f"{SCHEMAS}/3.0/openapi.json", json=items_spec())

        report = await validate(
            api,
            ValidationRequest(base_url=API, options=ValidationOptions(test_endpoints=False)),
        )

        assert report.metadata.schema_url == f"{SCHEMAS}/3.0/openapi.json"
        assert report.metadata.profile_reason == "Standard version HSDS-UK-3.0 read from '/' endpoint"
        assert report.is_valid

    @pytest.mark.asyncio
    async def test_fetch_failure_is_reported(self, api: FakeApi) -> None:
        report = await validate(api, request())

        assert not report.is_valid
        assert report.error == f"Failed to fetch {SCHEMA_URL}: HTTP 404"
        assert report.endpoint_results == []
        assert report.summary.total_endpoints == 0

    @pytest.mark.asyncio
    async def test_unparsable_document_is_reported(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, text="this is not a spec")

        report = await validate(api, request())

        assert not report.is_valid
        assert report.error is not None

    @pytest.mark.asyncio
    async def test_schema_credentials_are_sent(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        source = OpenApiSchemaSource(
            url=SCHEMA_URL, authentication=DataSourceAuth(bearer_token="schema-token")
        )

        await validate(
            api,
            request(open_api_schema=source, options=ValidationOptions(test_endpoints=False)),
        )

        assert api.requests[0].headers["Authorization"] == "Bearer schema-token"

    @pytest.mark.asyncio
    async def test_missing_urls_raise(self, api: FakeApi) -> None:
        with pytest.raises(ConfigurationError):
            await validate(api, ValidationRequest(base_url="  "))
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_non_http_schema_url_raises(self, api: FakeApi) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await validate(api, request(open_api_schema=OpenApiSchemaSource(url="ftp://x/o.json")))
        assert "Invalid OpenAPI spec URL" in exc_info.value.message


class TestReportOptions:
    """Tests for options that shape the report."""

    @pytest.mark.asyncio
    async def test_response_bodies_can_be_omitted(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api)

        report = await validate(api, request(options=ValidationOptions(include_response_body=False)))

        bodies = [r.response_body for e in report.endpoint_results for r in e.test_results]
        assert bodies
        assert all(body is None for body in bodies)

    @pytest.mark.asyncio
    async def test_test_results_can_be_omitted(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api)

        report = await validate(api, request(options=ValidationOptions(include_test_results=False)))

        assert all(e.test_results == [] for e in report.endpoint_results)
        assert report.summary.total_requests == 5

    @pytest.mark.asyncio
    async def test_cancellation_returns_partial_report(self, api: FakeApi) -> None:
        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, json={"id": "a"})

        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api, detail=hang)
        cancel_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel_event.set)

        report = await validate(api, request(), cancel_event)

        assert report.cancelled
        assert not report.is_valid
        assert report.endpoint_results[0].status == EndpointStatus.SUCCESS
        assert report.endpoint_results[1].status == EndpointStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_event_set_before_validation_sends_nothing(self, api: FakeApi) -> None:
        api.get(SCHEMA_URL, json=items_spec())
        serve_items(api)
        cancel_event = asyncio.Event()
        cancel_event.set()

        report = await validate(api, request(), cancel_event)

        assert api.requests == []
        assert report.cancelled
        assert not report.is_valid
        assert report.error is None
        assert report.endpoint_results == []

    @pytest.mark.asyncio
    async def test_cancel_during_schema_load_skips_refs_and_endpoints(self, api: FakeApi) -> None:
        cancel_event = asyncio.Event()
        spec = items_spec()
        spec["components"]["schemas"]["Item"] = {"$ref": "item.json"}

        def schema(request: httpx.Request) -> httpx.Response:
            cancel_event.set()
            return httpx.Response(200, json=spec)

        api.get(SCHEMA_URL, schema)
        api.get(f"{SCHEMAS}/item.json", json=ITEM_SCHEMA)
        serve_items(api)

        report = await validate(api, request(), cancel_event)

        assert api.urls() == [SCHEMA_URL]
        assert report.cancelled
        assert not report.is_valid
        assert report.metadata.spec_title == "Test API"
