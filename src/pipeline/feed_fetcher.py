"""
Feed Fetcher
Polls every active source, parses its items and stores unseen ones as PENDING.

Fetching runs concurrently with a per-source timeout; storing runs
sequentially on the request's session. A failing source only bumps
source_errors.
"""

from datetime import datetime
from functools import partial
from typing import Optional

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.tasks import run_isolated
from ..exceptions import FeedFetchError
from ..models.enums import FeedSourceKind
from ..models.feed_source import FeedSource
from ..repositories.feed_source_repository import FeedSourceRepository
from ..repositories.fetched_item_repository import FetchedItemRepository
from .feed_parser import ParsedFeed, parse_feed
from .schemas import FetchSummary

logger = structlog.get_logger(__name__)

FEED_ACCEPT_HEADER = "application/rss+xml, application/atom+xml, application/xml, text/xml"


class FeedFetcher:
    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.transport = transport
        self.source_repository = FeedSourceRepository(db)
        self.item_repository = FetchedItemRepository(db)

    async def fetch_all_active_sources(self) -> FetchSummary:
        summary = FetchSummary()

        sources = [s for s in self.source_repository.list_active() if s.kind == FeedSourceKind.RSS]
        if not sources:
            logger.info("feed_fetch_skipped", reason="no_active_sources")
            return summary

        logger.info("feed_fetch_started", source_count=len(sources))

        async with httpx.AsyncClient(
            timeout=self.settings.feed_fetch_timeout_seconds,
            headers={"User-Agent": self.settings.feed_user_agent, "Accept": FEED_ACCEPT_HEADER},
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            outcomes = await run_isolated(
                ((source.id, partial(self._download, client, source.url)) for source in sources),
                timeout=self.settings.feed_fetch_timeout_seconds,
                concurrency=self.settings.feed_fetch_concurrency,
            )

        sources_by_id = {source.id: source for source in sources}
        for outcome in outcomes:
            source = sources_by_id[outcome.key]

            if not outcome.ok:
                summary.source_errors += 1
                logger.warning("feed_fetch_failed", source_id=source.id, url=source.url, error=str(outcome.error))
                continue

            feed = parse_feed(outcome.result)
            try:
                created = self._store_items(source, feed)
            except SQLAlchemyError as e:
                self.db.rollback()
                summary.source_errors += 1
                logger.error("feed_store_failed", source_id=source.id, error=str(e))
                continue

            summary.sources_polled += 1
            summary.new_items_created += created
            logger.info(
                "feed_source_polled",
                source_id=source.id,
                feed_title=feed.title,
                parsed_items=len(feed.items),
                new_items=created,
            )

        logger.info("feed_fetch_completed", **summary.model_dump())
        return summary

    async def _download(self, client: httpx.AsyncClient, url: str) -> bytes:
        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            raise FeedFetchError("Request timed out") from e
        except httpx.HTTPError as e:
            raise FeedFetchError(f"Request failed: {e}") from e

        if not response.is_success:
            raise FeedFetchError(f"HTTP {response.status_code}")
        return response.content

    def _store_items(self, source: FeedSource, feed: ParsedFeed) -> int:
        source_id = source.id
        created = 0

        for item in feed.items[:self.settings.feed_max_items_per_source]:
            if self.item_repository.exists_by_url(item.link):
                continue

            stored = self.item_repository.create(
                source_id=source_id,
                url=item.link,
                title=item.title,
                content=item.content,
                excerpt=item.excerpt,
                published_at=item.published_at,
            )
            if stored:
                created += 1

        self.source_repository.mark_polled(source_id, datetime.now())
        return created


async def fetch_all_active_sources(db: Session) -> FetchSummary:
    """Entry point used by the scheduler and the operator trigger."""
    return await FeedFetcher(db).fetch_all_active_sources()
