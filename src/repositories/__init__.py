from .feed_source_repository import FeedSourceRepository
from .fetched_item_repository import FetchedItemRepository
from .publishing_settings_repository import PublishingSettingsRepository
from .post_repository import PostRepository

__all__ = [
    "FeedSourceRepository",
    "FetchedItemRepository",
    "PublishingSettingsRepository",
    "PostRepository",
]
