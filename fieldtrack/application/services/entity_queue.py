"""Per-entity sequential queue for remote calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityQueue:
    """Runs submitted jobs one at a time per key, in submission order.

    Jobs for different keys run concurrently. A job starts only after the
    previous job for its key has finished, whatever the outcome of that job.
    Keys can be aliased (a local placeholder id and the server id it became)
    so both names share one queue.
    """

    def __init__(self) -> None:
        self._tails: dict[Hashable, asyncio.Task] = {}
        self._aliases: dict[Hashable, Hashable] = {}

    def submit(self, key: Hashable, job: Callable[[], Awaitable[T]]) -> "asyncio.Task[T]":
        slot = self._resolve(key)
        previous = self._tails.get(slot)

        async def run() -> T:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            return await job()

        task = asyncio.get_running_loop().create_task(run())
        self._tails[slot] = task
        task.add_done_callback(lambda done: self._forget(slot, done))
        return task

    def alias(self, key: Hashable, other: Hashable) -> None:
        """Route jobs submitted under ``other`` to the queue of ``key``."""
        slot = self._resolve(key)
        if other != slot:
            self._aliases[other] = slot

    def is_busy(self, key: Hashable) -> bool:
        task = self._tails.get(self._resolve(key))
        return task is not None and not task.done()

    async def drain(self) -> None:
        """Wait until every job submitted so far has finished."""
        pending = [task for task in self._tails.values() if not task.done()]
        if pending:
            await asyncio.wait(pending)

    def _resolve(self, key: Hashable) -> Hashable:
        while key in self._aliases:
            key = self._aliases[key]
        return key

    def _forget(self, slot: Hashable, task: asyncio.Task) -> None:
        if self._tails.get(slot) is task:
            del self._tails[slot]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Queued job for %r failed", slot, exc_info=task.exception())
