"""Remote feed service client and the records it exchanges."""

from .client import FeedsClient
from .models import (
    DEFAULT_FEED_GROUP_CONFIG,
    Activity,
    ActivityProcessor,
    ActivitySelector,
    FeedGroupConfig,
    FeedSelector,
    MembershipEntry,
    Ranking,
    UserRecord,
)

__all__ = [
    "FeedsClient",
    "DEFAULT_FEED_GROUP_CONFIG",
    "Activity",
    "ActivityProcessor",
    "ActivitySelector",
    "FeedGroupConfig",
    "FeedSelector",
    "MembershipEntry",
    "Ranking",
    "UserRecord",
]
