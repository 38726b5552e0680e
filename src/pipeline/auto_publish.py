"""
Auto-Publish Policy Engine
Publishes the oldest APPROVED items within the configured daily quota.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import ConfigurationError
from ..models.enums import FetchedItemStatus
from ..models.publishing_settings import PublishingConfig
from ..repositories.fetched_item_repository import FetchedItemRepository
from ..repositories.publishing_settings_repository import PublishingSettingsRepository
from .publisher import PublishAction
from .schemas import PublishSummary

logger = structlog.get_logger(__name__)

ROLLING_WINDOW = timedelta(hours=24)


class AutoPublishService:
    def __init__(
        self,
        db: Session,
        publisher: Optional[PublishAction] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or datetime.now
        self.publisher = publisher or PublishAction(db, clock=self.clock, settings=self.settings)
        self.item_repository = FetchedItemRepository(db)
        self.settings_repository = PublishingSettingsRepository(db)

    async def run(self) -> PublishSummary:
        config = self.settings_repository.get_or_create().to_config()
        return await self.run_with_config(config)

    async def run_with_config(self, config: PublishingConfig) -> PublishSummary:
        summary = PublishSummary()

        if not config.auto_publish:
            logger.info("auto_publish_skipped", reason="disabled")
            return summary

        try:
            author_id, category_id = config.require_defaults()
        except ConfigurationError as e:
            logger.error(
                "auto_publish_misconfigured",
                reason="missing_defaults",
                error=str(e),
                default_author_id=config.default_author_id,
                default_category_id=config.default_category_id,
            )
            return summary

        budget = self._budget(config.daily_quota)
        if budget <= 0:
            logger.info("auto_publish_skipped", reason="quota_exhausted", daily_quota=config.daily_quota)
            return summary

        candidates = self.item_repository.list_by_status(
            FetchedItemStatus.APPROVED, order_by="processed_at", limit=budget
        )
        candidate_ids = [item.id for item in candidates]
        logger.info("auto_publish_started", candidates=len(candidate_ids), budget=budget)

        for item_id in candidate_ids:
            post_id = self.publisher.try_publish(item_id, author_id, category_id)
            if post_id is None:
                summary.errors += 1
            else:
                summary.published += 1

        logger.info("auto_publish_completed", **summary.model_dump())
        return summary

    def _budget(self, daily_quota: int) -> int:
        if daily_quota <= 0:
            return 0
        if self.settings.auto_publish_quota_window == "rolling_24h":
            already = self.item_repository.count_published_since(self.clock() - ROLLING_WINDOW)
            return max(0, daily_quota - already)
        return daily_quota


async def run_auto_publish(db: Session) -> PublishSummary:
    """Entry point used by the scheduler and the operator trigger."""
    return await AutoPublishService(db).run()
