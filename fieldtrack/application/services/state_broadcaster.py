"""State broadcaster — in-process publisher of immutable state snapshots."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")

Listener = Callable[[S], None]


class StateBroadcaster(Generic[S]):
    """Publishes snapshots to synchronous listeners and async subscribers.

    Publishing is synchronous: listeners run and subscriber queues are filled
    before ``publish`` returns, so observers never see a partial update. After
    ``shutdown`` every publish is a no-op.
    """

    def __init__(self, max_queue_size: int = 64) -> None:
        self._listeners: list[Listener] = []
        self._queues: list[asyncio.Queue[S | None]] = []
        self._max_queue_size = max_queue_size
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def subscribe(self) -> AsyncGenerator[S, None]:
        """Yield every snapshot published after subscribing, until shutdown."""
        queue: asyncio.Queue[S | None] = asyncio.Queue(self._max_queue_size)
        self._queues.append(queue)
        try:
            while True:
                snapshot = await queue.get()
                if snapshot is None:
                    break
                yield snapshot
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    def publish(self, snapshot: S) -> None:
        if self._closed:
            return
        for listener in list(self._listeners):
            listener(snapshot)

        dead_queues: list[asyncio.Queue[S | None]] = []
        for queue in self._queues:
            try:
                queue.put_nowait(snapshot)
            except asyncio.QueueFull:
                dead_queues.append(queue)
                logger.warning("State subscriber queue full — disconnecting")

        for queue in dead_queues:
            self._queues.remove(queue)
            self._drain_and_close(queue)

    def shutdown(self) -> None:
        """Disconnect every observer and ignore later publishes."""
        self._closed = True
        self._listeners.clear()
        for queue in self._queues:
            self._drain_and_close(queue)
        self._queues.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners) + len(self._queues)

    @staticmethod
    def _drain_and_close(queue: asyncio.Queue) -> None:
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(None)
