"""Rich console rendering of validation reports.

Example:
    >>> from openreferral_validator.reporters.console import ConsoleReporter
    >>> ConsoleReporter().render(report)
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from openreferral_validator.feeds.service import FeedValidationResult
from openreferral_validator.models.results import (
    EndpointStatus,
    EndpointTestResult,
    SpecificationValidation,
    ValidationReport,
)

STATUS_STYLES = {
    EndpointStatus.SUCCESS: "green",
    EndpointStatus.WARNING: "yellow",
    EndpointStatus.FAILED: "red",
    EndpointStatus.ERROR: "bold red",
    EndpointStatus.CANCELLED: "magenta",
    EndpointStatus.SKIPPED: "dim",
    EndpointStatus.NOT_TESTED: "dim",
}


def _verdict(is_valid: bool) -> Text:
    return Text("VALID", style="bold green") if is_valid else Text("INVALID", style="bold red")


class ConsoleReporter:
    """Prints reports as rich tables."""

    def __init__(self, console: Console | None = None, show_issues: bool = True) -> None:
        self.console = console or Console()
        self.show_issues = show_issues

    def render(self, report: ValidationReport) -> None:
        meta = report.metadata
        header = Text.assemble(
            _verdict(report.is_valid),
            "  ",
            (meta.spec_title or "Untitled API", "bold"),
            f" {meta.spec_version}" if meta.spec_version else "",
        )
        lines = [header, Text(f"Schema: {meta.schema_url or '-'}", style="dim")]
        if meta.base_url:
            lines.append(Text(f"Base URL: {meta.base_url}", style="dim"))
        if meta.profile_reason:
            lines.append(Text(meta.profile_reason, style="dim"))
        if report.cancelled:
            lines.append(Text("Validation was cancelled; results are partial", style="magenta"))
        if report.error:
            lines.append(Text(f"Error: {report.error}", style="red"))
        self.console.print(Panel(Text("\n").join(lines), title="OpenAPI Validation", expand=False))

        if report.specification_validation is not None:
            self._render_specification(report.specification_validation)
        if report.endpoint_results:
            self._render_endpoints(report.endpoint_results)
        self._render_summary(report)

    def _render_specification(self, validation: SpecificationValidation) -> None:
        metrics = validation.quality_metrics
        self.console.print(
            f"Specification: {validation.openapi_version or 'unknown version'}, "
            f"{validation.endpoint_count} endpoints, "
            f"quality score {metrics.quality_score:.0f}, "
            f"{len(validation.errors)} errors, {len(validation.warnings)} warnings"
        )
        if not self.show_issues:
            return
        for issue in validation.errors:
            self.console.print(f"  [red]✗[/red] {escape(issue.path)}: {escape(issue.message)}")
        for issue in validation.warnings:
            self.console.print(f"  [yellow]![/yellow] {escape(issue.path)}: {escape(issue.message)}")

    def _render_endpoints(self, results: list[EndpointTestResult]) -> None:
        table = Table(title="Endpoints", show_lines=False)
        table.add_column("Method", style="cyan", no_wrap=True)
        table.add_column("Path")
        table.add_column("Status")
        table.add_column("Requests", justify="right")
        table.add_column("Issues", justify="right")

        for result in results:
            issues = [i for t in result.test_results for i in t.issues]
            path = escape(result.path) + (" [dim](optional)[/dim]" if result.is_optional else "")
            table.add_row(
                result.method,
                path,
                Text(result.status.value, style=STATUS_STYLES.get(result.status, "")),
                str(len(result.test_results)),
                str(len(issues)) if issues else "",
            )
        self.console.print(table)

        if not self.show_issues:
            return
        for result in results:
            for test_result in result.test_results:
                for issue in test_result.issues:
                    style = "red" if issue.is_error else "yellow"
                    self.console.print(f"  [{style}]{issue.code.value}[/{style}] {escape(issue.message)}")

    def _render_summary(self, report: ValidationReport) -> None:
        summary = report.summary
        table = Table(show_header=False, box=None)
        table.add_column(style="bold")
        table.add_column(justify="right")
        table.add_row("Endpoints", str(summary.total_endpoints))
        table.add_row("Tested", str(summary.tested_endpoints))
        table.add_row("Successful", f"[green]{summary.successful_tests}[/green]")
        table.add_row("Warnings", f"[yellow]{summary.warning_tests}[/yellow]")
        table.add_row("Failed", f"[red]{summary.failed_tests}[/red]")
        table.add_row("Skipped", str(summary.skipped_tests))
        table.add_row("Requests", str(summary.total_requests))
        table.add_row("Avg response", f"{summary.average_response_time * 1000:.0f}ms")
        table.add_row("Duration", f"{report.metadata.duration:.2f}s")
        self.console.print(Panel(table, title="Summary", expand=False))

    def render_feeds(self, results: list[FeedValidationResult]) -> None:
        table = Table(title="Feeds")
        table.add_column("Feed")
        table.add_column("URL", style="dim")
        table.add_column("Up")
        table.add_column("Valid")
        table.add_column("Time", justify="right")
        table.add_column("Error")
        for result in results:
            table.add_row(
                result.feed_name or result.feed_id,
                result.feed_url,
                "[green]yes[/green]" if result.is_up else "[red]no[/red]",
                _verdict(result.is_valid),
                f"{result.response_time_ms:.0f}ms" if result.response_time_ms is not None else "-",
                escape(result.error_message or ""),
            )
        self.console.print(table)


__all__ = ["ConsoleReporter", "STATUS_STYLES"]
