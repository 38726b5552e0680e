from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..repositories.feed_source_repository import FeedSourceRepository
from ..repositories.fetched_item_repository import FetchedItemRepository
from ..repositories.publishing_settings_repository import PublishingSettingsRepository
from ..services.llm_service import LLMService, get_llm_service as build_llm_service
from ..pipeline.auto_publish import AutoPublishService
from ..pipeline.feed_fetcher import FeedFetcher
from ..pipeline.generation import GenerationOrchestrator
from ..pipeline.publisher import PublishAction

__all__ = [
    "get_db",
    "get_llm_service",
    "get_feed_source_repository",
    "get_fetched_item_repository",
    "get_publishing_settings_repository",
    "get_feed_fetcher",
    "get_generation_orchestrator",
    "get_publish_action",
    "get_auto_publish_service",
]


def get_llm_service() -> LLMService:
    return build_llm_service()


def get_feed_source_repository(db: Session = Depends(get_db)) -> FeedSourceRepository:
    return FeedSourceRepository(db)


def get_fetched_item_repository(db: Session = Depends(get_db)) -> FetchedItemRepository:
    return FetchedItemRepository(db)


def get_publishing_settings_repository(db: Session = Depends(get_db)) -> PublishingSettingsRepository:
    return PublishingSettingsRepository(db)


def get_feed_fetcher(db: Session = Depends(get_db)) -> FeedFetcher:
    return FeedFetcher(db)


def get_generation_orchestrator(
    db: Session = Depends(get_db),
    llm_service: LLMService = Depends(get_llm_service),
) -> GenerationOrchestrator:
    return GenerationOrchestrator(db, llm_service)


def get_publish_action(db: Session = Depends(get_db)) -> PublishAction:
    return PublishAction(db)


def get_auto_publish_service(
    db: Session = Depends(get_db),
    publisher: PublishAction = Depends(get_publish_action),
) -> AutoPublishService:
    return AutoPublishService(db, publisher)
