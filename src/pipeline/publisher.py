"""
Publish Action
Promotes one APPROVED item into a public post.

The post insert and the APPROVED -> PUBLISHED update share one transaction:
if another writer moved the item first, the post is rolled back with it.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    ContentNotReadyError,
    DatabaseError,
    InvalidStatusTransitionError,
    ItemNotFoundError,
    PipelineError,
    SlugAlreadyExistsError,
)
from ..models.enums import FetchedItemStatus
from ..models.fetched_item import FetchedItem
from ..models.post import Post
from ..repositories.fetched_item_repository import FetchedItemRepository
from ..repositories.post_repository import PostRepository
from ..utils.string_utils import generate_slug

logger = structlog.get_logger(__name__)

POST_STATUS_PUBLISHED = "PUBLISHED"

Clock = Callable[[], datetime]


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def build_structured_data(title: str, excerpt: Optional[str], published_at: datetime, organization: str) -> Dict[str, Any]:
    return {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": title,
        "description": excerpt or "",
        "datePublished": published_at.isoformat(),
        "author": {
            "@type": "Organization",
            "name": organization,
        },
    }


class PublishAction:
    def __init__(
        self,
        db: Session,
        post_repository: Optional[PostRepository] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.post_repository = post_repository or PostRepository(db)
        self.item_repository = FetchedItemRepository(db)
        self.clock = clock or datetime.now

    def publish(self, item_id: int, author_id: str, category_id: str) -> int:
        """
        Create a post from item_id and mark the item PUBLISHED.

        Returns the new post id. Raises ItemNotFoundError, ContentNotReadyError
        or InvalidStatusTransitionError without touching the store, and
        DatabaseError when the post or the status update cannot be stored.
        Every failure after validation leaves the transaction rolled back.
        """
        try:
            item = self._load_publishable(item_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to load fetched item {item_id}: {e}") from e

        now = self.clock()
        title = item.generated_title or item.original_title
        excerpt = item.generated_excerpt or item.original_excerpt
        slug = generate_slug(title)
        post_fields = dict(
            title=title,
            excerpt=excerpt,
            content=item.generated_content,
            status=POST_STATUS_PUBLISHED,
            published_at=now,
            author_id=author_id,
            category_id=category_id,
            structured_data=build_structured_data(
                title, excerpt, now, self.settings.publisher_organization_name
            ),
        )

        post = self._create_post(slug, now, item_id, post_fields)
        post_id = post.id

        try:
            claimed = self.item_repository.transition(
                item_id,
                FetchedItemStatus.APPROVED,
                FetchedItemStatus.PUBLISHED,
                post_id=post_id,
            )
            if claimed:
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to mark fetched item {item_id} published: {e}") from e

        if not claimed:
            self.db.rollback()
            current = self.item_repository.get(item_id)
            logger.warning("publish_claim_lost", item_id=item_id)
            raise InvalidStatusTransitionError(
                current.status if current else None, FetchedItemStatus.PUBLISHED
            )

        logger.info("item_published", item_id=item_id, post_id=post_id, slug=post.slug)
        return post_id

    def try_publish(self, item_id: int, author_id: str, category_id: str) -> Optional[int]:
        try:
            return self.publish(item_id, author_id, category_id)
        except PipelineError as e:
            logger.error("publish_failed", item_id=item_id, error=str(e), error_type=type(e).__name__)
            return None

    def _load_publishable(self, item_id: int) -> FetchedItem:
        item = self.item_repository.get(item_id)
        if not item:
            raise ItemNotFoundError(item_id)
        if item.status != FetchedItemStatus.APPROVED:
            raise InvalidStatusTransitionError(item.status, FetchedItemStatus.PUBLISHED)
        if not item.has_generated_content:
            raise ContentNotReadyError(f"Fetched item {item_id} has no generated content")
        return item

    def _create_post(self, slug: str, now: datetime, item_id: int, post_fields: Dict[str, Any]) -> Post:
        try:
            return self.post_repository.create(slug=slug, **post_fields)
        except SlugAlreadyExistsError:
            retry_slug = f"{slug}-{epoch_millis(now)}-{item_id}"
            logger.info("post_slug_collision", slug=slug, retry_slug=retry_slug)
            return self.post_repository.create(slug=retry_slug, **post_fields)
