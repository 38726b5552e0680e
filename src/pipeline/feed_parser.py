"""
Feed markup parsing
Turns RSS 2.0 / Atom documents into plain-text items ready for storage
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import feedparser
import structlog

from ..exceptions import FeedParseError
from ..utils.content_cleaner import ContentCleaner
from ..utils.string_utils import clean_text, cut_text

logger = structlog.get_logger(__name__)

EXCERPT_MAX_CHARS = 300


@dataclass
class ParsedFeedItem:
    title: str
    link: str
    content: str
    excerpt: Optional[str] = None
    published_at: Optional[datetime] = None


@dataclass
class ParsedFeed:
    title: str = ""
    items: List[ParsedFeedItem] = field(default_factory=list)


def parse_feed(markup) -> ParsedFeed:
    """
    Parse feed markup (bytes or str). Never raises: malformed documents
    produce an empty item list.
    """
    try:
        feed = _load(markup)
    except FeedParseError as e:
        logger.warning("feed_parse_failed", error=str(e))
        return ParsedFeed()

    title = clean_text(ContentCleaner.decode_entities(feed.feed.get("title", "")))

    items = []
    for entry in feed.entries:
        item = _parse_entry(entry)
        if item:
            items.append(item)

    return ParsedFeed(title=title, items=items)


def _load(markup):
    try:
        feed = feedparser.parse(markup)
    except Exception as e:
        raise FeedParseError(f"feedparser failed: {e}") from e

    # bozo alone is common for slightly broken feeds that still yield entries
    if feed.bozo and not feed.entries:
        raise FeedParseError(f"Malformed feed markup: {feed.get('bozo_exception', '')}")
    return feed


def _parse_entry(entry) -> Optional[ParsedFeedItem]:
    title = clean_text(ContentCleaner.decode_entities(entry.get("title", "")))
    # RSS <guid> and Atom <id> both land in entry.id
    link = (entry.get("link") or entry.get("id") or "").strip()

    if not title or not link:
        return None

    summary = entry.get("summary")
    rich_content = _first_content_value(entry)
    content = ContentCleaner.clean_html_content(rich_content or summary or "")
    excerpt = cut_text(ContentCleaner.clean_html_content(summary), EXCERPT_MAX_CHARS) if summary else None

    return ParsedFeedItem(
        title=title,
        link=link,
        content=content,
        excerpt=excerpt or None,
        published_at=_parse_date(entry),
    )


def _first_content_value(entry) -> Optional[str]:
    for block in entry.get("content") or []:
        value = block.get("value")
        if value:
            return value
    return None


def _parse_date(entry) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6])
            except (TypeError, ValueError):
                continue
    return None
