from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.database import Base
from .enums import FetchedItemStatus


class FetchedItem(Base):
    """
    Raw article pulled from a feed, tracked through generation and publishing.
    original_url is the dedup key: the unique constraint is the only thing
    preventing double ingestion.
    """
    __tablename__ = "fetched_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, ForeignKey("feed_sources.id"), nullable=False, index=True)

    # Original content
    original_url = Column(String(1000), nullable=False, unique=True)
    original_title = Column(String(500), nullable=False)
    original_content = Column(Text, nullable=False, default="")
    original_excerpt = Column(Text)
    published_at = Column(DateTime)

    status = Column(
        SAEnum(FetchedItemStatus, name="fetched_item_status"),
        nullable=False,
        default=FetchedItemStatus.PENDING,
        index=True,
    )

    # Generated content (set once generation succeeds)
    generated_title = Column(String(500))
    generated_content = Column(Text)
    generated_excerpt = Column(Text)
    processed_at = Column(DateTime)

    post_id = Column(Integer, ForeignKey("posts.id"), nullable=True)

    fetched_at = Column(DateTime, default=func.now(), nullable=False)

    source = relationship("FeedSource")

    def __repr__(self):
        return f"<FetchedItem(id={self.id}, status='{self.status}', url='{self.original_url[:50]}')>"

    @property
    def has_generated_content(self) -> bool:
        return self.generated_content is not None and self.generated_content.strip() != ""
