"""
Single-flight guard: at most one in-flight computation per key.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    Concurrent callers with the same key share one task's result instead of
    each running fn. The key is released as soon as the task finishes, so a
    later call starts a fresh computation.
    """

    def __init__(self):
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    def _release(self, key: Hashable, task: asyncio.Task) -> None:
        self._inflight.pop(key, None)
        # Retrieve the outcome so a failure nobody awaited is not reported as lost
        if not task.cancelled():
            task.exception()

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.info(f"Joining in-flight computation for {key}")

        # A cancelled waiter must not cancel the shared computation
        return await asyncio.shield(task)
