"""Registered feeds and their periodic validation."""

from openreferral_validator.feeds.service import (
    FeedValidationResult,
    FeedValidationService,
    feed_validation_options,
)
from openreferral_validator.feeds.store import (
    FeedStore,
    InMemoryFeedStore,
    ServiceFeed,
    StatusFlag,
    StatusFlagKind,
)

__all__ = [
    "FeedStore",
    "FeedValidationResult",
    "FeedValidationService",
    "InMemoryFeedStore",
    "ServiceFeed",
    "StatusFlag",
    "StatusFlagKind",
    "feed_validation_options",
]
