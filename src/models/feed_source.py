from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum as SAEnum
from sqlalchemy.sql import func

from ..core.database import Base
from .enums import FeedSourceKind


class FeedSource(Base):
    """
    A registered syndication endpoint.
    Operators manage these rows; the pipeline only touches last_polled_at.
    """
    __tablename__ = "feed_sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    url = Column(String(1000), nullable=False, unique=True)
    kind = Column(SAEnum(FeedSourceKind, name="feed_source_kind"), nullable=False, default=FeedSourceKind.RSS)
    language = Column(String(20), nullable=False, default="zh-TW")
    is_active = Column(Boolean, nullable=False, default=True)
    poll_interval_minutes = Column(Integer, nullable=False, default=60)
    last_polled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<FeedSource(id={self.id}, name='{self.name}', kind='{self.kind}')>"
