"""
Pipeline Scheduler
Runs the recurring pipeline jobs as asyncio tasks inside the API process.

| Job                 | Fires                                      |
|---------------------|--------------------------------------------|
| feed_fetch          | hourly at fetch_minute                     |
| generation_failsafe | every failsafe_interval_hours at minute 15 |
| auto_publish        | hourly at auto_publish_minute              |

Every run opens its own session and never lets an exception escape, so one
bad run cannot stop the loop.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.database import SessionLocal
from .auto_publish import run_auto_publish
from .feed_fetcher import fetch_all_active_sources
from .generation import process_pending_content

logger = structlog.get_logger(__name__)

JobAction = Callable[[Session], Awaitable[Any]]


@dataclass(frozen=True)
class RecurringJob:
    name: str
    minute: int
    hour_step: int
    action: JobAction


def next_run_after(now: datetime, minute: int, hour_step: int = 1) -> datetime:
    """
    Next fire time strictly after now for a "<minute> */<hour_step> * * *"
    schedule. Hours count from midnight, so a step of 2 fires on even hours.
    """
    candidate = now.replace(minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(hours=1)
    while candidate.hour % hour_step != 0:
        candidate += timedelta(hours=1)
    return candidate


class PipelineScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        fetch_sources: Callable[[Session], Awaitable[Any]] = fetch_all_active_sources,
        process_pending: Callable[[Session, Optional[int]], Awaitable[Any]] = process_pending_content,
        auto_publish: Callable[[Session], Awaitable[Any]] = run_auto_publish,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.clock = clock
        self.fetch_sources = fetch_sources
        self.process_pending = process_pending
        self.auto_publish = auto_publish
        self._tasks: List[asyncio.Task] = []

        self.jobs: Dict[str, RecurringJob] = {
            job.name: job
            for job in (
                RecurringJob("feed_fetch", self.settings.fetch_minute, 1, self._run_feed_fetch),
                RecurringJob(
                    "generation_failsafe",
                    self.settings.failsafe_minute,
                    self.settings.failsafe_interval_hours,
                    self._run_generation_failsafe,
                ),
                RecurringJob("auto_publish", self.settings.auto_publish_minute, 1, self._run_auto_publish),
            )
        }

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._loop(job), name=f"scheduler:{job.name}")
            for job in self.jobs.values()
        ]
        logger.info("scheduler_started", jobs=list(self.jobs))

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("scheduler_stopped")

    async def run_job_once(self, name: str) -> bool:
        """Run one job now on a fresh session. False when the run raised."""
        job = self.jobs.get(name)
        if job is None:
            raise KeyError(f"Unknown scheduler job: {name}")

        db = self.session_factory()
        try:
            logger.info("scheduled_job_started", job=name)
            result = await job.action(db)
            logger.info("scheduled_job_completed", job=name, result=_describe(result))
            return True
        except Exception as e:
            db.rollback()
            logger.error("scheduled_job_failed", job=name, error=str(e), exc_info=e)
            return False
        finally:
            db.close()

    async def _loop(self, job: RecurringJob) -> None:
        while True:
            now = self.clock()
            fire_at = next_run_after(now, job.minute, job.hour_step)
            logger.debug("scheduled_job_waiting", job=job.name, next_run=fire_at.isoformat())
            await asyncio.sleep(max(0.0, (fire_at - now).total_seconds()))
            await self.run_job_once(job.name)

    async def _run_feed_fetch(self, db: Session):
        summary = await self.fetch_sources(db)
        if summary.new_items_created > 0:
            logger.info("generation_cascade_triggered", new_items=summary.new_items_created)
            await self.process_pending(db, self.settings.generation_batch_size)
        return summary

    async def _run_generation_failsafe(self, db: Session):
        return await self.process_pending(db, self.settings.generation_batch_size)

    async def _run_auto_publish(self, db: Session):
        return await self.auto_publish(db)


def _describe(result: Any) -> Any:
    if hasattr(result, "model_dump"):
        return result.model_dump()
    return result
