from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from ..models.enums import FetchedItemStatus, ensure_transition
from ..models.fetched_item import FetchedItem
from ..models.post import Post

_ORDERABLE_FIELDS = {"fetched_at", "processed_at", "published_at"}


class FetchedItemRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, item_id: int) -> Optional[FetchedItem]:
        return self.session.query(FetchedItem).filter(FetchedItem.id == item_id).first()

    def get_many(self, item_ids: Sequence[int]) -> List[FetchedItem]:
        """Items for the given ids, in the order the ids were given. Unknown ids are skipped."""
        if not item_ids:
            return []
        found = {
            item.id: item
            for item in self.session.query(FetchedItem).filter(FetchedItem.id.in_(list(item_ids))).all()
        }
        return [found[item_id] for item_id in item_ids if item_id in found]

    def exists_by_url(self, url: str) -> bool:
        return self.session.query(FetchedItem.id).filter(FetchedItem.original_url == url).first() is not None

    def create(
        self,
        source_id: int,
        url: str,
        title: str,
        content: str,
        excerpt: Optional[str] = None,
        published_at: Optional[datetime] = None,
    ) -> Optional[FetchedItem]:
        """
        Insert a new PENDING item. Returns None when another writer already
        stored the same URL between our existence check and the insert.
        """
        item = FetchedItem(
            source_id=source_id,
            original_url=url,
            original_title=title,
            original_content=content,
            original_excerpt=excerpt,
            published_at=published_at,
            status=FetchedItemStatus.PENDING,
        )
        self.session.add(item)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return None
        self.session.refresh(item)
        return item

    def list_by_status(
        self,
        status: FetchedItemStatus,
        order_by: str = "fetched_at",
        limit: Optional[int] = None,
    ) -> List[FetchedItem]:
        if order_by not in _ORDERABLE_FIELDS:
            raise ValueError(f"Cannot order fetched items by {order_by}")
        column = getattr(FetchedItem, order_by)
        query = (
            self.session.query(FetchedItem)
            .filter(FetchedItem.status == status)
            .order_by(column.asc(), FetchedItem.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def paginate(
        self,
        status: Optional[FetchedItemStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[FetchedItem], int]:
        query = self.session.query(FetchedItem)
        if status is not None:
            query = query.filter(FetchedItem.status == status)
        total = query.count()
        items = (
            query.order_by(FetchedItem.fetched_at.desc(), FetchedItem.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def count_by_status(self) -> Dict[str, int]:
        rows = (
            self.session.query(FetchedItem.status, func.count(FetchedItem.id))
            .group_by(FetchedItem.status)
            .all()
        )
        counts = {status.value: 0 for status in FetchedItemStatus}
        for status, count in rows:
            counts[FetchedItemStatus(status).value] = count
        return counts

    def count_published_since(self, cutoff: datetime) -> int:
        """Items that produced a post whose publish time is at or after cutoff."""
        return (
            self.session.query(func.count(FetchedItem.id))
            .join(Post, Post.id == FetchedItem.post_id)
            .filter(
                FetchedItem.status == FetchedItemStatus.PUBLISHED,
                Post.published_at >= cutoff,
            )
            .scalar()
        ) or 0

    def transition(
        self,
        item_id: int,
        expected: FetchedItemStatus,
        target: FetchedItemStatus,
        **fields,
    ) -> bool:
        """
        Advance item_id from expected to target in a single conditional UPDATE.

        Returns False when the row is missing or no longer in the expected
        state. Does not commit; the caller owns the transaction.
        """
        ensure_transition(expected, target)
        result = self.session.execute(
            update(FetchedItem)
            .where(FetchedItem.id == item_id, FetchedItem.status == expected)
            .values(status=target, **fields)
            .execution_options(synchronize_session=False)
        )
        cached = self.session.identity_map.get(identity_key(FetchedItem, item_id))
        if cached is not None:
            self.session.expire(cached)
        return result.rowcount == 1

    def set_status(self, item: FetchedItem, target: FetchedItemStatus) -> bool:
        """Validated transition from the item's current state, committed immediately."""
        changed = self.transition(item.id, FetchedItemStatus(item.status), target)
        if changed:
            self.session.commit()
            self.session.refresh(item)
        return changed
