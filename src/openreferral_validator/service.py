"""OpenApiValidationService - The full validation pipeline.

request -> discover schema URL -> fetch and resolve the document ->
validate its structure -> test live endpoints -> summarise into a report.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import httpx

from openreferral_validator.config.settings import ValidatorSettings
from openreferral_validator.discovery.json_nodes import get_str
from openreferral_validator.discovery.openapi_url import DiscoveryResolver
from openreferral_validator.discovery.ref_resolver import ReferenceResolver
from openreferral_validator.errors import (
    ConfigurationError,
    ErrorContext,
    SchemaParseError,
    ValidatorError,
)
from openreferral_validator.models.requests import ValidationRequest
from openreferral_validator.models.results import (
    ReportMetadata,
    SpecificationValidation,
    TestSummary,
    ValidationReport,
)
from openreferral_validator.testing.auth import build_auth_headers
from openreferral_validator.testing.http import HttpTester
from openreferral_validator.testing.orchestrator import EndpointTestOrchestrator
from openreferral_validator.validation.schema_validator import SchemaValidator
from openreferral_validator.validation.specification import validate_specification

logger = logging.getLogger(__name__)


class OpenApiValidationService:
    """Validates an OpenAPI document and, optionally, the live API it describes.

    Example::

        service = OpenApiValidationService()
        report = await service.validate(
            ValidationRequest(base_url="https://api.example.org")
        )
        print(report.is_valid, report.summary.failed_tests)

    Args:
        settings: Process-wide settings. Loaded from the environment when
            omitted.
        client: HTTP client shared by every request of a validation run. A
            client is created per run when omitted.
        validator: JSON Schema validator for documents and bodies.
    """

    def __init__(
        self,
        settings: ValidatorSettings | None = None,
        client: httpx.AsyncClient | None = None,
        validator: SchemaValidator | None = None,
    ) -> None:
        self.settings = settings or ValidatorSettings()
        self._client = client
        self.validator = validator or SchemaValidator()

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(follow_redirects=True) as client:
            yield client

    async def validate(
        self,
        request: ValidationRequest | dict[str, Any],
        cancel_event: asyncio.Event | None = None,
    ) -> ValidationReport:
        """Run a validation request.

        Args:
            request: The request, or its camelCase JSON form.
            cancel_event: When set during endpoint testing, the run stops and
                a partial report with ``cancelled=True`` is returned.

        Returns:
            The report. Fetch and parse failures produce an invalid report
            with ``error`` set rather than raising.

        Raises:
            ConfigurationError: If there is neither a schema URL nor a base
                URL, or no schema URL can be determined.
        """
        if isinstance(request, dict):
            request = ValidationRequest.model_validate(request)

        if request.schema_url is None and not (request.base_url and request.base_url.strip()):
            raise ConfigurationError(
                "OpenAPI schema URL must be provided or BaseUrl must allow discovery",
                field="openApiSchema.url",
            )

        started = time.perf_counter()
        report = ValidationReport(
            metadata=ReportMetadata(
                base_url=request.base_url,
                timestamp=datetime.now(timezone.utc),
                user_agent=self.settings.user_agent,
            )
        )
        logger.info("Starting OpenAPI validation for %s", request.schema_url or request.base_url)

        try:
            async with self._client_scope() as client:
                await self._run(request, report, client, cancel_event)
        except ConfigurationError:
            raise
        except asyncio.CancelledError:
            report.cancelled = True
            report.is_valid = False
            raise
        except ValidatorError as e:
            logger.error("OpenAPI validation failed: %s", e, extra={"data": e.context.to_dict()})
            self._fail(report, e.message)
        except Exception as e:
            logger.exception("Unexpected error during OpenAPI validation")
            self._fail(report, f"Unexpected error: {e}")
        finally:
            report.metadata.duration = time.perf_counter() - started

        logger.info(
            "OpenAPI validation completed: valid=%s endpoints=%d cancelled=%s",
            report.is_valid,
            len(report.endpoint_results),
            report.cancelled,
        )
        return report

    @staticmethod
    def _fail(report: ValidationReport, message: str) -> None:
        report.is_valid = False
        report.error = message
        report.summary = TestSummary()

    @staticmethod
    def _stop_if_cancelled(report: ValidationReport, cancel_event: asyncio.Event | None) -> bool:
        if cancel_event is None or not cancel_event.is_set():
            return False
        logger.warning("OpenAPI validation cancelled")
        report.cancelled = True
        report.is_valid = False
        return True

    async def _run(
        self,
        request: ValidationRequest,
        report: ValidationReport,
        client: httpx.AsyncClient,
        cancel_event: asyncio.Event | None,
    ) -> None:
        options = request.options
        if self._stop_if_cancelled(report, cancel_event):
            return
        schema_url = await self._schema_url(request, report, client)
        report.metadata.schema_url = schema_url

        if self._stop_if_cancelled(report, cancel_event):
            return
        raw, spec = await self._load_spec(request, schema_url, client, cancel_event)
        report.metadata.spec_title = get_str(spec, "info", "title")
        report.metadata.spec_version = get_str(spec, "info", "version")
        if self._stop_if_cancelled(report, cancel_event):
            return

        spec_validation: SpecificationValidation | None = None
        if options.validate_specification:
            spec_validation = validate_specification(spec, self.validator, raw_spec=raw)
            report.specification_validation = spec_validation

        if options.test_endpoints and request.base_url:
            orchestrator = EndpointTestOrchestrator(
                HttpTester(client, self.settings.user_agent),
                validator=self.validator,
                options=options,
                auth=request.data_source_auth,
                openapi_document=spec,
                sample_size=self.settings.id_sample_size,
            )
            try:
                report.endpoint_results = await orchestrator.run(
                    spec.get("paths") or {}, request.base_url, cancel_event
                )
            finally:
                report.endpoint_results = orchestrator.results
                report.cancelled = orchestrator.cancelled

        report.summary = TestSummary.from_results(
            report.endpoint_results,
            spec_validation.is_valid if spec_validation is not None else True,
        )
        report.is_valid = (
            not report.cancelled
            and (spec_validation is None or spec_validation.is_valid)
            and report.summary.failed_tests == 0
        )

        if not options.include_response_body:
            for endpoint in report.endpoint_results:
                for test_result in endpoint.test_results:
                    test_result.response_body = None
        if not options.include_test_results:
            for endpoint in report.endpoint_results:
                endpoint.test_results.clear()

    async def _schema_url(
        self, request: ValidationRequest, report: ValidationReport, client: httpx.AsyncClient
    ) -> str:
        if request.schema_url is not None:
            schema_url = request.schema_url
        else:
            resolver = DiscoveryResolver(
                client,
                specification_base_url=self.settings.specification_base_url,
                timeout=self.settings.discovery_timeout,
            )
            discovery = await resolver.resolve(request.base_url)
            if not discovery.url:
                raise ConfigurationError("Failed to discover OpenAPI schema URL from base URL")
            logger.info("Discovered OpenAPI schema URL %s (%s)", discovery.url, discovery.reason)
            report.metadata.profile_reason = discovery.reason
            schema_url = discovery.url

        if not schema_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Invalid OpenAPI spec URL: {schema_url}",
                field="openApiSchema.url",
                context=ErrorContext(url=schema_url),
            )
        return schema_url

    async def _load_spec(
        self,
        request: ValidationRequest,
        schema_url: str,
        client: httpx.AsyncClient,
        cancel_event: asyncio.Event | None = None,
    ) -> tuple[Any, dict[str, Any]]:
        """Fetch the document and return it both as fetched and resolved."""
        resolver = ReferenceResolver(
            client,
            headers=build_auth_headers(request.open_api_schema.authentication),
            timeout=self.settings.schema_fetch_timeout,
            cancel_event=cancel_event,
        )
        logger.info("Fetching OpenAPI specification from %s", schema_url)
        raw = await resolver.fetch_document(schema_url)
        spec = await resolver.resolve(raw, base_uri=schema_url)
        if not isinstance(spec, dict):
            raise SchemaParseError("OpenAPI specification must be a JSON object", url=schema_url)
        return raw, spec


__all__ = ["OpenApiValidationService"]
