"""FeedValidationService - Validates registered feeds and records their status."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from openreferral_validator.feeds.store import FeedStore, ServiceFeed
from openreferral_validator.models.requests import ValidationOptions, ValidationRequest
from openreferral_validator.models.results import ValidationReport, _Serializable
from openreferral_validator.observability.logging import log_context
from openreferral_validator.service import OpenApiValidationService

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 5
NO_SPECIFIC_ERRORS = "Validation failed with no specific errors"


def feed_validation_options() -> ValidationOptions:
    """Options every feed is validated with."""
    return ValidationOptions(
        validate_specification=True,
        test_endpoints=True,
        test_optional_endpoints=True,
        treat_optional_endpoints_as_warnings=True,
        timeout_seconds=60,
        max_concurrent_requests=10,
    )


@dataclass
class FeedValidationResult(_Serializable):
    feed_id: str
    feed_url: str
    feed_name: str | None = None
    is_up: bool = False
    is_valid: bool = False
    error_message: str | None = None
    response_time_ms: float | None = None
    validation_error_count: int = 0


def summarize_errors(report: ValidationReport) -> str:
    """Describe why a report is invalid.

    The first five specification errors are joined with ``"; "``.
    """
    spec_errors = report.specification_validation.errors if report.specification_validation else []
    messages = [f"{e.path}: {e.message}" for e in spec_errors[:MAX_REPORTED_ERRORS]]
    if messages:
        return "; ".join(messages)
    return report.error or NO_SPECIFIC_ERRORS


class FeedValidationService:
    """Runs the validation pipeline for every active feed in a registry.

    Example::

        store = InMemoryFeedStore.from_file("feeds.yaml")
        feeds = FeedValidationService(store, OpenApiValidationService())
        results = await feeds.validate_all()

    Args:
        store: The feed registry.
        validation_service: Service used to validate each feed.
    """

    def __init__(self, store: FeedStore, validation_service: OpenApiValidationService) -> None:
        self.store = store
        self.validation_service = validation_service

    async def validate_feed(self, feed: ServiceFeed) -> FeedValidationResult:
        """Validate one feed without recording the outcome.

        A feed whose OpenAPI document cannot be loaded is reported as down.
        """
        result = FeedValidationResult(feed_id=feed.id, feed_url=feed.url, feed_name=feed.name)
        request = ValidationRequest(base_url=feed.url, options=feed_validation_options())

        with log_context(feed_id=feed.id):
            logger.info("Validating feed: %s (%s)", feed.name or "Unnamed", feed.url)
            try:
                report = await self.validation_service.validate(request)
            except httpx.TimeoutException as e:
                logger.warning("Feed validation timed out: %s (%s)", feed.url, e)
                result.error_message = "Request timed out"
                return result
            except httpx.HTTPError as e:
                logger.warning("Feed is not accessible: %s (%s)", feed.url, e)
                result.error_message = f"HTTP error: {e}"
                return result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Unexpected error validating feed: %s", feed.url)
                result.error_message = f"Unexpected error: {e}"
                return result

            result.is_up = report.error is None
            result.is_valid = report.is_valid
            result.response_time_ms = report.metadata.duration * 1000
            if report.specification_validation is not None:
                result.validation_error_count = len(report.specification_validation.errors)
            if not report.is_valid:
                result.error_message = summarize_errors(report)

            logger.info(
                "Feed validation completed: %s - is_up=%s is_valid=%s errors=%d",
                feed.name or "Unnamed",
                result.is_up,
                result.is_valid,
                result.validation_error_count,
            )
        return result

    async def validate_all(self) -> list[FeedValidationResult]:
        """Validate every active feed in turn and record each outcome."""
        try:
            feeds = self.store.list_active()
        except Exception:
            logger.exception("Failed to retrieve feeds from the registry")
            return []

        logger.info("Validating %d active feeds", len(feeds))
        results = []
        for feed in feeds:
            result = await self.validate_feed(feed)
            self.store.update_status(
                feed.id,
                is_up=result.is_up,
                is_valid=result.is_valid,
                error=result.error_message,
                response_time_ms=result.response_time_ms,
                validation_error_count=result.validation_error_count,
            )
            results.append(result)
        return results


__all__ = [
    "FeedValidationResult",
    "FeedValidationService",
    "feed_validation_options",
    "summarize_errors",
]
