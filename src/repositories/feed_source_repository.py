from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..models.enums import FeedSourceKind
from ..models.feed_source import FeedSource
from ..models.fetched_item import FetchedItem


class FeedSourceRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, source_id: int) -> Optional[FeedSource]:
        return self.session.query(FeedSource).filter(FeedSource.id == source_id).first()

    def list_all(self) -> List[FeedSource]:
        return self.session.query(FeedSource).order_by(desc(FeedSource.created_at), desc(FeedSource.id)).all()

    def list_active(self) -> List[FeedSource]:
        return (
            self.session.query(FeedSource)
            .filter(FeedSource.is_active.is_(True))
            .order_by(FeedSource.id)
            .all()
        )

    def create(
        self,
        name: str,
        url: str,
        kind: FeedSourceKind = FeedSourceKind.RSS,
        language: str = "zh-TW",
        poll_interval_minutes: int = 60,
        is_active: bool = True,
    ) -> FeedSource:
        source = FeedSource(
            name=name,
            url=url,
            kind=kind,
            language=language,
            poll_interval_minutes=poll_interval_minutes,
            is_active=is_active,
        )
        self.session.add(source)
        self.session.commit()
        self.session.refresh(source)
        return source

    def update(self, source: FeedSource, **fields) -> FeedSource:
        for key, value in fields.items():
            if value is not None and hasattr(source, key):
                setattr(source, key, value)
        self.session.commit()
        self.session.refresh(source)
        return source

    def mark_polled(self, source_id: int, polled_at: Optional[datetime] = None) -> None:
        source = self.get(source_id)
        if source:
            source.last_polled_at = polled_at or datetime.now()
            self.session.commit()

    def has_items(self, source_id: int) -> bool:
        return (
            self.session.query(FetchedItem.id).filter(FetchedItem.source_id == source_id).first()
            is not None
        )

    def delete(self, source: FeedSource) -> None:
        self.session.delete(source)
        self.session.commit()
