"""Tests for the command line interface and console reporter."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from openreferral_validator import cli as cli_module
from openreferral_validator.cli import EXIT_CONFIG_ERROR, EXIT_INVALID, EXIT_VALID, cli
from openreferral_validator.discovery.openapi_url import DiscoveryResult
from openreferral_validator.feeds.service import FeedValidationResult
from openreferral_validator.models.results import (
    EndpointStatus,
    EndpointTestResult,
    ReportMetadata,
    ValidationReport,
)
from openreferral_validator.reporters.console import ConsoleReporter


class RecordingService:
    """Stands in for OpenApiValidationService and records requests."""

    report = ValidationReport(is_valid=True)
    requests: list[Any] = []

    def __init__(self, settings: Any) -> None:
        self.settings = settings

    async def validate(self, request: Any, cancel_event: Any = None) -> ValidationReport:
        RecordingService.requests.append(request)
        return RecordingService.report


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def service(monkeypatch: pytest.MonkeyPatch) -> type[RecordingService]:
    RecordingService.report = ValidationReport(is_valid=True)
    RecordingService.requests = []
    monkeypatch.setattr(cli_module, "OpenApiValidationService", RecordingService)
    return RecordingService


class TestValidateCommand:
    """Tests for ``validate``."""

    def test_requires_a_url(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["validate"])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "OpenAPI schema URL must be provided" in result.output

    def test_json_output_for_valid_report(
        self, runner: CliRunner, service: type[RecordingService]
    ) -> None:
        result = runner.invoke(
            cli, ["validate", "--schema-url", "https://x.example/openapi.json", "-f", "json"]
        )
        assert result.exit_code == EXIT_VALID
        assert json.loads(result.stdout)["isValid"] is True
        assert service.requests[0].schema_url == "https://x.example/openapi.json"

    def test_invalid_report_exits_one(
        self, runner: CliRunner, service: type[RecordingService]
    ) -> None:
        service.report = ValidationReport(is_valid=False, error="Failed to fetch")
        result = runner.invoke(cli, ["validate", "-s", "https://x.example/o.json"])
        assert result.exit_code == EXIT_INVALID
        assert "INVALID" in result.output
        assert "Failed to fetch" in result.output

    def test_flags_map_onto_options(
        self, runner: CliRunner, service: type[RecordingService]
    ) -> None:
        result = runner.invoke(
            cli,
            [
                "validate",
                "-b",
                "https://api.example",
                "--no-spec-validation",
                "--skip-optional",
                "--optional-as-failures",
                "--timeout",
                "9",
                "--max-concurrent",
                "3",
                "--api-key",
                "secret",
                "--no-response-body",
            ],
        )
        assert result.exit_code == EXIT_VALID
        request = service.requests[0]
        options = request.options
        assert request.base_url == "https://api.example"
        assert not options.validate_specification
        assert not options.test_optional_endpoints
        assert not options.treat_optional_endpoints_as_warnings
        assert options.timeout_seconds == 9
        assert options.max_concurrent_requests == 3
        assert not options.include_response_body
        assert request.data_source_auth.api_key == "secret"
        assert not options.skip_authentication

    def test_settings_supply_defaults(
        self,
        runner: CliRunner,
        service: type[RecordingService],
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("OPENREFERRAL_MAX_CONCURRENT_REQUESTS", raising=False)
        config = tmp_path / "validator.yaml"
        config.write_text("max_concurrent_requests: 7\ntimeout_seconds: 12\n")

        result = runner.invoke(cli, ["-c", str(config), "validate", "-s", "https://x/o.json", "--no-endpoints"])

        assert result.exit_code == EXIT_VALID
        options = service.requests[0].options
        assert options.max_concurrent_requests == 7
        assert options.timeout_seconds == 12
        assert not options.test_endpoints

    def test_request_file(
        self, runner: CliRunner, service: type[RecordingService], tmp_path: Path
    ) -> None:
        path = tmp_path / "request.yaml"
        path.write_text(
            "openApiSchema:\n  url: https://x.example/o.json\n"
            "options:\n  maxConcurrentRequests: 4\n  includeTestResults: false\n"
        )
        result = runner.invoke(cli, ["validate", "--request", str(path)])
        assert result.exit_code == EXIT_VALID
        options = service.requests[0].options
        assert options.max_concurrent_requests == 4
        assert not options.include_test_results

    def test_invalid_request_file(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "request.json"
        path.write_text('{"options": {"timeoutSeconds": 0}}')
        result = runner.invoke(cli, ["validate", "--request", str(path)])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid request" in result.output

    def test_writes_report_file(
        self, runner: CliRunner, service: type[RecordingService], tmp_path: Path
    ) -> None:
        output = tmp_path / "report.json"
        result = runner.invoke(cli, ["validate", "-s", "https://x/o.json", "-o", str(output)])
        assert result.exit_code == EXIT_VALID
        assert json.loads(output.read_text())["isValid"] is True

    def test_bad_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "validator.yaml"
        config.write_text("- not a mapping\n")
        result = runner.invoke(cli, ["-c", str(config), "validate"])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Configuration error" in result.output


class TestDiscoverCommand:
    """Tests for ``discover``."""

    def _patch(self, monkeypatch: pytest.MonkeyPatch, result: DiscoveryResult) -> None:
        class StubResolver:
            def __init__(self, *args: Any, **kwargs: Any) -> None:
                pass

            async def resolve(self, base_url: str) -> DiscoveryResult:
                return result

        monkeypatch.setattr(cli_module, "DiscoveryResolver", StubResolver)

    def test_prints_json(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        self._patch(monkeypatch, DiscoveryResult("https://s/3.0/openapi.json", "Standard version 3.0"))
        result = runner.invoke(cli, ["discover", "https://api.example", "--json"])
        assert result.exit_code == EXIT_VALID
        assert json.loads(result.stdout) == {
            "url": "https://s/3.0/openapi.json",
            "reason": "Standard version 3.0",
        }

    def test_no_url(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        self._patch(monkeypatch, DiscoveryResult(None, None))
        result = runner.invoke(cli, ["discover", " "])
        assert result.exit_code == EXIT_CONFIG_ERROR


class TestFeedsCommand:
    """Tests for ``feeds``."""

    def test_validates_and_writes_back(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        class StubFeedService:
            def __init__(self, store: Any, validation_service: Any) -> None:
                self.store = store

            async def validate_all(self) -> list[FeedValidationResult]:
                self.store.update_status(
                    "a",
                    is_up=True,
                    is_valid=False,
                    error="paths: missing",
                    response_time_ms=5.0,
                    validation_error_count=1,
                )
                return [
                    FeedValidationResult(
                        feed_id="a", feed_url="https://a.example", is_up=True, error_message="paths: missing"
                    )
                ]

        monkeypatch.setattr(cli_module, "FeedValidationService", StubFeedService)
        feed_file = tmp_path / "feeds.yaml"
        feed_file.write_text(yaml.safe_dump([{"id": "a", "url": "https://a.example", "active": True}]))

        result = runner.invoke(cli, ["feeds", str(feed_file), "--write-back", "--json"])

        assert result.exit_code == EXIT_INVALID
        assert json.loads(result.stdout)[0]["feedId"] == "a"
        assert "Updated feed a" in result.stderr
        saved = yaml.safe_load(feed_file.read_text())
        assert saved[0]["lastError"] == "paths: missing"
        assert saved[0]["statusIsUp"] is True

    def test_bad_feed_file(self, runner: CliRunner, tmp_path: Path) -> None:
        feed_file = tmp_path / "feeds.yaml"
        feed_file.write_text("feeds: 3\n")
        result = runner.invoke(cli, ["feeds", str(feed_file)])
        assert result.exit_code == EXIT_CONFIG_ERROR


class TestConsoleReporter:
    """Tests for rich rendering."""

    def _render(self, report: ValidationReport) -> str:
        buffer = io.StringIO()
        ConsoleReporter(Console(file=buffer, width=120, color_system=None)).render(report)
        return buffer.getvalue()

    def test_renders_endpoints_and_summary(self) -> None:
        report = ValidationReport(
            is_valid=True,
            metadata=ReportMetadata(spec_title="Demo API", spec_version="3.0", schema_url="https://x/o.json"),
            endpoint_results=[
                EndpointTestResult(path="/services/{id}", method="GET", status=EndpointStatus.SUCCESS)
            ],
        )
        output = self._render(report)
        assert "VALID" in output
        assert "Demo API 3.0" in output
        assert "/services/{id}" in output
        assert "Success" in output
        assert "Summary" in output

    def test_renders_cancelled_report(self) -> None:
        output = self._render(ValidationReport(cancelled=True))
        assert "INVALID" in output
        assert "cancelled" in output
