from .enums import FeedSourceKind, FetchedItemStatus
from .feed_source import FeedSource
from .fetched_item import FetchedItem
from .publishing_settings import PublishingSettings, PublishingConfig
from .post import Post

__all__ = [
    "FeedSourceKind",
    "FetchedItemStatus",
    "FeedSource",
    "FetchedItem",
    "PublishingSettings",
    "PublishingConfig",
    "Post",
]
