"""WebSocket host channel: fan-out of host messages to connected clients."""

import asyncio
import logging
import threading

logger = logging.getLogger(__name__)


class HostBroadcaster:
    """
    Bridges the pipeline thread to asyncio subscribers.

    Every subscriber owns a single-slot queue that always holds the newest
    payload; a slow client skips messages instead of building a backlog.
    """

    def __init__(self):
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscribers: set[asyncio.Queue] = set()
        self._lock = threading.Lock()

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def attached(self) -> bool:
        return self._loop is not None and bool(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        with self._lock:
            self._subscribers.add(queue)
        logger.info("Host subscriber connected (%d total)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        with self._lock:
            self._subscribers.discard(queue)
        logger.info("Host subscriber disconnected (%d left)", len(self._subscribers))

    def send(self, payload: dict) -> None:
        """Thread-safe: schedule delivery on the event loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._deliver, payload)

    def _deliver(self, payload: dict) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for queue in subscribers:
            if queue.full():
                queue.get_nowait()  # drop the stale one
            queue.put_nowait(payload)
