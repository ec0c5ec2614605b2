"""Feed registry port and its in-memory implementation.

Feed documents come from a shared registry where status fields have been
written in more than one shape over time: a plain boolean, a ``"true"``
string, or an object carrying the boolean under ``value``. Status flags are
parsed once into :class:`StatusFlag` and written back in the shape they were
read in.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from openreferral_validator.discovery.json_nodes import deep_copy, parse_document
from openreferral_validator.errors import ConfigurationError

logger = logging.getLogger(__name__)


class StatusFlagKind(str, Enum):
    PLAIN = "plain"
    WRAPPED = "wrapped"


def _truthy(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() == "true"
    return False


@dataclass(frozen=True)
class StatusFlag:
    """A boolean status field together with the shape it is stored in."""

    value: bool = False
    kind: StatusFlagKind = StatusFlagKind.PLAIN
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def parse(cls, raw: Any) -> StatusFlag:
        if isinstance(raw, dict):
            extra = {k: v for k, v in raw.items() if k != "value"}
            return cls(_truthy(raw.get("value")), StatusFlagKind.WRAPPED, extra)
        return cls(_truthy(raw), StatusFlagKind.PLAIN)

    def with_value(self, value: bool) -> StatusFlag:
        return replace(self, value=value)

    def to_raw(self) -> Any:
        if self.kind is StatusFlagKind.WRAPPED:
            return {**deep_copy(self.extra), "value": self.value}
        return self.value

    def __bool__(self) -> bool:
        return self.value


def _feed_name(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, dict):
        value = raw.get("value")
        return str(value) if value is not None else None
    return str(raw)


@dataclass
class ServiceFeed:
    """A registered service feed."""

    id: str
    url: str
    name: str | None = None
    active: bool = False
    status_is_up: StatusFlag = field(default_factory=StatusFlag)
    status_is_valid: StatusFlag = field(default_factory=StatusFlag)
    status_overall: StatusFlag = field(default_factory=StatusFlag)
    last_checked: datetime | None = None
    last_error: str | None = None
    response_time_ms: float | None = None
    validation_error_count: int | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> ServiceFeed:
        """Build a feed from a registry document.

        The URL is read from ``service.url`` and falls back to ``url``.
        """
        service = doc.get("service")
        url = service.get("url") if isinstance(service, dict) else None
        if not isinstance(url, str):
            url = doc.get("url") if isinstance(doc.get("url"), str) else ""

        last_checked = doc.get("lastChecked")
        if isinstance(last_checked, str):
            try:
                last_checked = datetime.fromisoformat(last_checked)
            except ValueError:
                last_checked = None
        elif not isinstance(last_checked, datetime):
            last_checked = None

        return cls(
            id=str(doc.get("id") or doc.get("_id") or ""),
            url=url,
            name=_feed_name(doc.get("name")),
            active=StatusFlag.parse(doc.get("active")).value,
            status_is_up=StatusFlag.parse(doc.get("statusIsUp")),
            status_is_valid=StatusFlag.parse(doc.get("statusIsValid")),
            status_overall=StatusFlag.parse(doc.get("statusOverall")),
            last_checked=last_checked,
            last_error=doc.get("lastError"),
            response_time_ms=doc.get("responseTime"),
            validation_error_count=doc.get("validationErrors"),
        )

    def status_fields(self) -> dict[str, Any]:
        """Status fields in registry document form."""
        return {
            "statusIsUp": self.status_is_up.to_raw(),
            "statusIsValid": self.status_is_valid.to_raw(),
            "statusOverall": self.status_overall.to_raw(),
            "lastChecked": self.last_checked.isoformat() if self.last_checked else None,
            "lastError": self.last_error,
            "responseTime": self.response_time_ms,
            "validationErrors": self.validation_error_count,
        }


class FeedStore(ABC):
    """Abstract port for the feed registry."""

    @abstractmethod
    def list_active(self) -> list[ServiceFeed]:
        """Return every feed whose ``active`` flag is true."""
        ...

    @abstractmethod
    def get(self, feed_id: str) -> ServiceFeed | None:
        ...

    @abstractmethod
    def update_status(
        self,
        feed_id: str,
        *,
        is_up: bool,
        is_valid: bool,
        error: str | None,
        response_time_ms: float | None,
        validation_error_count: int | None,
    ) -> bool:
        """Record the outcome of validating a feed.

        ``statusOverall`` follows ``is_valid``. Each status flag keeps the
        shape it already has in the stored document.

        Returns:
            True if the feed exists and was updated.
        """
        ...


class InMemoryFeedStore(FeedStore):
    """Feed registry held in memory as raw documents.

    Example::

        store = InMemoryFeedStore([
            {"id": "1", "url": "https://api.example.org", "active": True},
        ])
        store.list_active()
    """

    def __init__(self, documents: list[dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        for doc in documents or []:
            self.add(doc)

    @classmethod
    def from_file(cls, path: str | Path) -> InMemoryFeedStore:
        """Load feed documents from a JSON or YAML file.

        The file holds either a list of documents or an object with a
        ``feeds`` list.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Feed file not found: {path}", field="feeds")
        data = parse_document(path.read_text(encoding="utf-8"), str(path))
        if isinstance(data, dict):
            data = data.get("feeds")
        if not isinstance(data, list):
            raise ConfigurationError(
                f"Feed file must contain a list of feeds: {path}", field="feeds"
            )
        return cls([doc for doc in data if isinstance(doc, dict)])

    def add(self, document: dict[str, Any]) -> ServiceFeed:
        doc = deep_copy(document)
        feed = ServiceFeed.from_document(doc)
        if not feed.id:
            feed.id = str(len(self._documents) + 1)
            doc["id"] = feed.id
        self._documents[feed.id] = doc
        return feed

    def documents(self) -> list[dict[str, Any]]:
        return [deep_copy(doc) for doc in self._documents.values()]

    def list_active(self) -> list[ServiceFeed]:
        feeds = [ServiceFeed.from_document(doc) for doc in self._documents.values()]
        return [feed for feed in feeds if feed.active]

    def get(self, feed_id: str) -> ServiceFeed | None:
        doc = self._documents.get(feed_id)
        return ServiceFeed.from_document(doc) if doc is not None else None

    def update_status(
        self,
        feed_id: str,
        *,
        is_up: bool,
        is_valid: bool,
        error: str | None,
        response_time_ms: float | None,
        validation_error_count: int | None,
    ) -> bool:
        doc = self._documents.get(feed_id)
        if doc is None:
            logger.warning("Feed %s not found for update", feed_id)
            return False

        feed = ServiceFeed.from_document(doc)
        feed.status_is_up = feed.status_is_up.with_value(is_up)
        feed.status_is_valid = feed.status_is_valid.with_value(is_valid)
        feed.status_overall = feed.status_overall.with_value(is_valid)
        feed.last_checked = datetime.now(timezone.utc)
        feed.last_error = error
        feed.response_time_ms = response_time_ms
        feed.validation_error_count = validation_error_count
        doc.update(feed.status_fields())

        logger.info(
            "Updated feed %s: is_up=%s is_valid=%s response_time=%sms errors=%s",
            feed_id,
            is_up,
            is_valid,
            response_time_ms,
            validation_error_count,
        )
        return True


__all__ = [
    "FeedStore",
    "InMemoryFeedStore",
    "ServiceFeed",
    "StatusFlag",
    "StatusFlagKind",
]
