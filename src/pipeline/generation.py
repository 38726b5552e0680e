"""
Generation Orchestrator
Rewrites fetched items into original articles through the LLM service.

Every attempt claims its items with a conditional PENDING -> PROCESSING
update. A failed or empty provider reply puts the claimed items back to
PENDING so the next sweep retries them.
"""

from datetime import datetime
from typing import List, Optional, Sequence

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.tasks import run_isolated
from ..exceptions import ValidationError
from ..models.enums import FetchedItemStatus
from ..models.fetched_item import FetchedItem
from ..repositories.fetched_item_repository import FetchedItemRepository
from ..services.llm_service import LLMService, get_llm_service
from .prompts import (
    GeneratedArticle,
    SourceArticle,
    build_system_prompt,
    build_user_prompt,
    parse_generated_content,
)
from .schemas import GenerationSummary

logger = structlog.get_logger(__name__)


class GenerationOrchestrator:
    def __init__(
        self,
        db: Session,
        llm_service: Optional[LLMService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.llm_service = llm_service or get_llm_service()
        self.item_repository = FetchedItemRepository(db)

    async def generate_single(self, item_id: int) -> bool:
        """Generate an article for one PENDING item. True when it ends APPROVED."""
        claimed = self._claim([item_id])
        if not claimed:
            logger.info("generation_skipped", item_id=item_id, reason="not_pending")
            return False

        try:
            article = await self._generate(self.item_repository.get_many(claimed))
            if article is None:
                self._release(claimed)
                return False
            return self._store_result(claimed, article)
        except SQLAlchemyError:
            self.db.rollback()
            self._release(claimed)
            raise

    async def generate_combined(self, item_ids: Sequence[int]) -> Optional[int]:
        """
        Merge several PENDING items into one article.

        The article lands on the first claimed item (APPROVED); the others
        become ABSORBED. Returns the primary item id, or None on failure, in
        which case every claimed item is back to PENDING.
        """
        unique_ids = list(dict.fromkeys(item_ids))
        if not unique_ids:
            raise ValidationError("At least one item id is required")

        claimed = self._claim(unique_ids)
        if not claimed:
            logger.info("combined_generation_skipped", item_ids=unique_ids, reason="not_pending")
            return None

        try:
            article = await self._generate(self.item_repository.get_many(claimed))
            if article is None:
                self._release(claimed)
                return None
            if not self._store_result(claimed, article):
                return None
        except SQLAlchemyError:
            self.db.rollback()
            self._release(claimed)
            raise

        logger.info("combined_generation_completed", primary_item_id=claimed[0], absorbed=claimed[1:])
        return claimed[0]

    async def process_pending(self, limit: Optional[int] = None) -> GenerationSummary:
        """Run single-item generation over the oldest PENDING items."""
        limit = self.settings.generation_batch_size if limit is None else limit
        summary = GenerationSummary()

        pending_ids = [
            item.id
            for item in self.item_repository.list_by_status(
                FetchedItemStatus.PENDING, order_by="fetched_at", limit=limit
            )
        ]
        logger.info("generation_sweep_started", pending=len(pending_ids), limit=limit)

        for item_id in pending_ids:
            try:
                succeeded = await self.generate_single(item_id)
            except Exception as e:
                self.db.rollback()
                logger.error("generation_item_crashed", item_id=item_id, error=str(e), exc_info=e)
                succeeded = False

            if succeeded:
                summary.processed += 1
            else:
                summary.errors += 1

        logger.info("generation_sweep_completed", **summary.model_dump())
        return summary

    def _claim(self, item_ids: Sequence[int]) -> List[int]:
        claimed = [
            item_id
            for item_id in item_ids
            if self.item_repository.transition(item_id, FetchedItemStatus.PENDING, FetchedItemStatus.PROCESSING)
        ]
        self.db.commit()
        return claimed

    def _release(self, item_ids: Sequence[int]) -> None:
        for item_id in item_ids:
            self.item_repository.transition(item_id, FetchedItemStatus.PROCESSING, FetchedItemStatus.PENDING)
        self.db.commit()
        logger.info("generation_rolled_back", item_ids=list(item_ids))

    async def _generate(self, items: List[FetchedItem]) -> Optional[GeneratedArticle]:
        if not items:
            return None

        sources = [
            SourceArticle(
                source_name=item.source.name if item.source else "Unknown",
                title=item.original_title,
                content=item.original_content or "",
            )
            for item in items
        ]
        messages = [
            {"role": "system", "content": build_system_prompt(self.settings.generation_language)},
            {"role": "user", "content": build_user_prompt(sources, self.settings.generation_source_max_chars)},
        ]

        item_ids = [item.id for item in items]
        outcome = (await run_isolated(
            [(tuple(item_ids), lambda: self.llm_service.generate(
                messages,
                temperature=self.settings.generation_temperature,
                max_tokens=self.settings.generation_max_tokens,
            ))],
            timeout=self.settings.generation_timeout_seconds,
            concurrency=1,
        ))[0]

        if not outcome.ok:
            logger.warning("generation_failed", item_ids=item_ids, error=str(outcome.error))
            return None
        if not outcome.result or not outcome.result.strip():
            logger.warning("generation_failed", item_ids=item_ids, error="empty reply")
            return None

        article = parse_generated_content(outcome.result, self.settings.generation_default_title)
        if not article.content:
            logger.warning("generation_failed", item_ids=item_ids, error="reply has no article body")
            return None
        return article

    def _store_result(self, claimed: List[int], article: GeneratedArticle) -> bool:
        primary_id, absorbed_ids = claimed[0], claimed[1:]
        processed_at = datetime.now()

        stored = self.item_repository.transition(
            primary_id,
            FetchedItemStatus.PROCESSING,
            FetchedItemStatus.APPROVED,
            generated_title=article.title,
            generated_content=article.content,
            generated_excerpt=article.excerpt,
            processed_at=processed_at,
        )
        if not stored:
            # Primary changed under us; leave it as the other writer left it and free the rest
            self.db.rollback()
            logger.warning("generation_result_discarded", item_id=primary_id, reason="status_changed")
            if absorbed_ids:
                self._release(absorbed_ids)
            return False

        for item_id in absorbed_ids:
            self.item_repository.transition(
                item_id,
                FetchedItemStatus.PROCESSING,
                FetchedItemStatus.ABSORBED,
                processed_at=processed_at,
            )

        self.db.commit()
        logger.info("generation_completed", item_id=primary_id, title=article.title)
        return True


async def process_pending_content(db: Session, limit: Optional[int] = None) -> GenerationSummary:
    """Entry point used by the scheduler and the operator trigger."""
    return await GenerationOrchestrator(db).process_pending(limit)
