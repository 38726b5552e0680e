import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    key: Any
    result: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_isolated(
    units: Iterable[Tuple[Any, Callable[[], Awaitable[T]]]],
    timeout: float,
    concurrency: int = 5,
) -> List[TaskOutcome[T]]:
    """
    Run each (key, coroutine factory) unit with its own timeout.

    A failing or hanging unit yields an outcome carrying the error; the other
    units keep running. Outcomes come back in input order. Cancellation of the
    caller still propagates.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(key: Any, factory: Callable[[], Awaitable[T]]) -> TaskOutcome[T]:
        async with semaphore:
            try:
                result = await asyncio.wait_for(factory(), timeout=timeout)
                return TaskOutcome(key=key, result=result)
            except asyncio.TimeoutError:
                logger.warning("task_timed_out", key=key, timeout_seconds=timeout)
                return TaskOutcome(key=key, error=TimeoutError(f"Timed out after {timeout}s"))
            except Exception as e:
                return TaskOutcome(key=key, error=e)

    return list(await asyncio.gather(*(_run(key, factory) for key, factory in units)))
