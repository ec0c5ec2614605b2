"""DiscoveryResolver - Works out which OpenAPI document applies to an API.

An HSDS-UK API describes itself at its base URL. The response may carry a
``version`` (mapped onto the published schema for that standard version) or
an explicit ``openapi_url``. Anything else falls back to the baseline 1.0
schema, with a reason recorded for the report.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

import httpx

from openreferral_validator.config.settings import DEFAULT_SPECIFICATION_BASE_URL

logger = logging.getLogger(__name__)

BASELINE_VERSION = 1.0
OPENAPI_URL_FIELDS = ("openapi_url", "openapiUrl", "open_api_url")
_VERSION_PREFIX = re.compile(r"^hsds-uk-", re.IGNORECASE)


@dataclass(frozen=True)
class DiscoveryResult:
    """Where the OpenAPI document lives, and why."""

    url: str | None
    reason: str | None

    def __iter__(self) -> Iterator[str | None]:
        return iter((self.url, self.reason))


def parse_version(raw: object) -> float | None:
    """Parse a version token such as ``"HSDS-UK-3.0"`` or ``"v1.0"``."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if not isinstance(raw, str):
        return None
    token = _VERSION_PREFIX.sub("", raw.strip())
    token = token.replace("V", "").replace("v", "").strip()
    try:
        return float(token)
    except ValueError:
        return None


class DiscoveryResolver:
    """Resolves the OpenAPI document URL for an API from its base URL.

    Example::

        async with httpx.AsyncClient() as client:
            resolver = DiscoveryResolver(client)
            url, reason = await resolver.resolve("https://api.example.org")

    Args:
        client: HTTP client used for the base URL request.
        specification_base_url: Prefix of the published schema URLs; the
            version and ``/openapi.json`` are appended.
        timeout: Timeout in seconds for the base URL request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        specification_base_url: str = DEFAULT_SPECIFICATION_BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._specification_base_url = specification_base_url
        self._timeout = timeout

    def versioned_url(self, version: float) -> str:
        return f"{self._specification_base_url}{version:.1f}/openapi.json"

    def _default(self, why: str) -> DiscoveryResult:
        return DiscoveryResult(
            self.versioned_url(BASELINE_VERSION), f"Defaulted to HSDS-UK 1.0 ({why})"
        )

    async def resolve(self, base_url: str | None) -> DiscoveryResult:
        """Determine the OpenAPI URL for ``base_url``.

        Returns:
            ``DiscoveryResult(None, None)`` for a blank base URL, otherwise a
            URL and a human-readable reason. Never raises for HTTP or parse
            failures.
        """
        if not base_url or not base_url.strip():
            return DiscoveryResult(None, None)

        try:
            response = await self._client.get(base_url.strip(), timeout=self._timeout)
        except httpx.HTTPError as e:
            logger.warning("Discovery request to %s failed: %s", base_url, e)
            return self._default("error requesting base URL")

        if not response.is_success:
            logger.info(
                "Discovery request to %s returned %s", base_url, response.status_code
            )
            return self._default("base URL request failed")

        try:
            payload = json.loads(response.text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not parse discovery response from %s: %s", base_url, e)
            return self._default("failed to parse base URL response")

        if not isinstance(payload, dict):
            return self._default("no version or openapi_url found")

        raw_version = payload.get("version")
        if raw_version is not None:
            version = parse_version(raw_version)
            if version is not None:
                return DiscoveryResult(
                    self.versioned_url(version),
                    f"Standard version {raw_version} read from '/' endpoint",
                )
            logger.info("Ignoring unparsable version %r from %s", raw_version, base_url)

        for name in OPENAPI_URL_FIELDS:
            value = payload.get(name)
            if isinstance(value, str) and value.strip():
                return DiscoveryResult(
                    value, "OpenAPI URL read from '/' endpoint (openapi_url field)"
                )

        return self._default("no version or openapi_url found")


__all__ = [
    "BASELINE_VERSION",
    "DiscoveryResolver",
    "DiscoveryResult",
    "parse_version",
]
