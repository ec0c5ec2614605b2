"""Command line interface for the validator.

Exit codes: 0 when everything validated, 1 when validation failed, 2 on a
configuration error.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

import click
import httpx
import yaml
from rich.console import Console

from openreferral_validator.config.settings import ValidatorSettings, load_settings
from openreferral_validator.discovery.json_nodes import parse_document
from openreferral_validator.discovery.openapi_url import DiscoveryResolver
from openreferral_validator.errors import ConfigurationError, ValidatorError
from openreferral_validator.feeds.service import FeedValidationService
from openreferral_validator.feeds.store import InMemoryFeedStore
from openreferral_validator.models.requests import DataSourceAuth, ValidationRequest
from openreferral_validator.models.results import ValidationReport
from openreferral_validator.observability.logging import configure_logging
from openreferral_validator.reporters.console import ConsoleReporter
from openreferral_validator.service import OpenApiValidationService

logger = logging.getLogger(__name__)

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_CONFIG_ERROR = 2


def _fail_config(error: ValidatorError) -> None:
    click.echo(f"Configuration error: {error.message}", err=True)
    sys.exit(EXIT_CONFIG_ERROR)


def _load_request_file(path: str) -> dict[str, Any]:
    data = parse_document(Path(path).read_text(encoding="utf-8"), path)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Request file must contain an object: {path}", field="request")
    return data


async def _validate_with_interrupt(
    service: OpenApiValidationService, request: ValidationRequest
) -> ValidationReport:
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    # Ctrl-C stops endpoint testing and keeps the partial report.
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    try:
        return await service.validate(request, cancel_event)
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGINT)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to a YAML config file")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None, json_logs: bool) -> None:
    """Validate OpenAPI documents and the live APIs they describe."""
    ctx.ensure_object(dict)
    try:
        settings = load_settings(config)
    except ValidatorError as e:
        _fail_config(e)

    level = "DEBUG" if verbose else settings.log_level
    configure_logging(level=level, json_format=json_logs or settings.json_logs)
    ctx.obj["settings"] = settings


@cli.command()
@click.option("--schema-url", "-s", help="URL of the OpenAPI document")
@click.option("--base-url", "-b", help="Base URL of the API under test")
@click.option(
    "--request",
    "request_file",
    type=click.Path(exists=True),
    help="JSON or YAML file holding a full validation request",
)
@click.option("--no-endpoints", is_flag=True, help="Only validate the document")
@click.option("--no-spec-validation", is_flag=True, help="Skip document structure checks")
@click.option("--skip-optional", is_flag=True, help="Do not test Optional-tagged endpoints")
@click.option(
    "--optional-as-failures",
    is_flag=True,
    help="Fail optional endpoints whose responses are invalid",
)
@click.option("--timeout", type=click.IntRange(min=1), help="Per-request timeout in seconds")
@click.option("--max-concurrent", type=click.IntRange(min=1), help="Concurrent requests per group")
@click.option("--api-key", envvar="OPENREFERRAL_API_KEY", help="API key sent to the API under test")
@click.option("--bearer-token", envvar="OPENREFERRAL_BEARER_TOKEN", help="Bearer token for the API")
@click.option("--no-response-body", is_flag=True, help="Drop response bodies from the report")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(), help="Write the JSON report to a file")
@click.pass_context
def validate(
    ctx: click.Context,
    schema_url: str | None,
    base_url: str | None,
    request_file: str | None,
    no_endpoints: bool,
    no_spec_validation: bool,
    skip_optional: bool,
    optional_as_failures: bool,
    timeout: int | None,
    max_concurrent: int | None,
    api_key: str | None,
    bearer_token: str | None,
    no_response_body: bool,
    output_format: str,
    output: str | None,
) -> None:
    """Validate an OpenAPI document and optionally test its endpoints.

    Either --schema-url or --base-url is required. With only a base URL the
    document location is discovered from the API root.
    """
    settings: ValidatorSettings = ctx.obj["settings"]

    try:
        data = _load_request_file(request_file) if request_file else {}
        request = ValidationRequest.model_validate(data)
    except ValidatorError as e:
        _fail_config(e)
    except ValueError as e:
        click.echo(f"Invalid request: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    if schema_url:
        request.open_api_schema.url = schema_url
    if base_url:
        request.base_url = base_url

    options = request.options
    if request_file is None:
        options.timeout_seconds = settings.timeout_seconds
        options.max_concurrent_requests = settings.max_concurrent_requests
    if no_endpoints:
        options.test_endpoints = False
    if no_spec_validation:
        options.validate_specification = False
    if skip_optional:
        options.test_optional_endpoints = False
    if optional_as_failures:
        options.treat_optional_endpoints_as_warnings = False
    if timeout is not None:
        options.timeout_seconds = timeout
    if max_concurrent is not None:
        options.max_concurrent_requests = max_concurrent
    if no_response_body:
        options.include_response_body = False
    if api_key or bearer_token:
        auth = request.data_source_auth or DataSourceAuth()
        if api_key:
            auth.api_key = api_key
        if bearer_token:
            auth.bearer_token = bearer_token
        request.data_source_auth = auth
        options.skip_authentication = False

    service = OpenApiValidationService(settings)
    try:
        report = asyncio.run(_validate_with_interrupt(service, request))
    except ValidatorError as e:
        _fail_config(e)

    report_json = json.dumps(report.to_dict(), indent=2, default=str)
    if output:
        Path(output).write_text(report_json, encoding="utf-8")
        click.echo(f"Report written to {output}", err=True)

    if output_format == "json":
        click.echo(report_json)
    else:
        ConsoleReporter(Console()).render(report)

    sys.exit(EXIT_VALID if report.is_valid else EXIT_INVALID)


@cli.command()
@click.argument("base_url")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def discover(ctx: click.Context, base_url: str, as_json: bool) -> None:
    """Find the OpenAPI document URL advertised by an API root."""
    settings: ValidatorSettings = ctx.obj["settings"]

    async def _discover() -> tuple[str | None, str | None]:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            resolver = DiscoveryResolver(
                client,
                specification_base_url=settings.specification_base_url,
                timeout=settings.discovery_timeout,
            )
            url, reason = await resolver.resolve(base_url)
            return url, reason

    url, reason = asyncio.run(_discover())
    if url is None:
        click.echo("No OpenAPI document URL could be determined", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    if as_json:
        click.echo(json.dumps({"url": url, "reason": reason}, indent=2))
    else:
        click.echo(url)
        if reason:
            click.echo(reason, err=True)


@cli.command()
@click.argument("feed_file", type=click.Path(exists=True))
@click.option("--write-back", is_flag=True, help="Save updated feed statuses to FEED_FILE")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def feeds(ctx: click.Context, feed_file: str, write_back: bool, as_json: bool) -> None:
    """Validate every active feed listed in FEED_FILE (JSON or YAML)."""
    settings: ValidatorSettings = ctx.obj["settings"]
    try:
        store = InMemoryFeedStore.from_file(feed_file)
    except ValidatorError as e:
        _fail_config(e)

    service = FeedValidationService(store, OpenApiValidationService(settings))
    results = asyncio.run(service.validate_all())

    if write_back:
        documents = store.documents()
        path = Path(feed_file)
        if path.suffix.lower() in (".yaml", ".yml"):
            path.write_text(yaml.safe_dump(documents, sort_keys=False), encoding="utf-8")
        else:
            path.write_text(json.dumps(documents, indent=2, default=str), encoding="utf-8")

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2, default=str))
    else:
        ConsoleReporter(Console()).render_feeds(results)

    sys.exit(EXIT_VALID if all(r.is_valid for r in results) else EXIT_INVALID)


def main() -> None:
    """Entry point for the ``openreferral-validator`` command."""
    cli()


__all__ = ["cli", "main"]
