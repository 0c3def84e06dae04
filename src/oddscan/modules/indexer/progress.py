"""Live progress channel exposed while a scan is in flight."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable

from .models import ProgressEvent, Stats

logger = logging.getLogger(__name__)

RECENT_LINES = 200


class ScanProgress:
    """Publish/subscribe channel for raw log lines and stats snapshots.

    Subscribers are called on the event loop thread in publication order,
    which is the order the lines were read from the process. After
    :meth:`close` nothing is delivered any more.
    """

    def __init__(self, recent_lines: int = RECENT_LINES):
        self._log_callbacks: list[Callable[[str], None]] = []
        self._stats_callbacks: list[Callable[[Stats], None]] = []
        self._queues: list[asyncio.Queue[ProgressEvent | None]] = []
        self._recent: deque[str] = deque(maxlen=recent_lines)
        self._latest_stats: Stats | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def latest_stats(self) -> Stats | None:
        return self._latest_stats.copy() if self._latest_stats else None

    @property
    def recent_lines(self) -> list[str]:
        return list(self._recent)

    def on_log(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a log-line callback; returns a function that unsubscribes it."""
        self._log_callbacks.append(callback)
        return lambda: _discard(self._log_callbacks, callback)

    def on_stats(self, callback: Callable[[Stats], None]) -> Callable[[], None]:
        """Register a stats callback; returns a function that unsubscribes it."""
        self._stats_callbacks.append(callback)
        return lambda: _discard(self._stats_callbacks, callback)

    def publish_log(self, line: str) -> None:
        if self._closed:
            return
        self._recent.append(line)
        for callback in list(self._log_callbacks):
            _deliver(callback, line)
        self._enqueue(ProgressEvent(kind="log", line=line))

    def publish_stats(self, stats: Stats) -> None:
        if self._closed:
            return
        self._latest_stats = stats.copy()
        for callback in list(self._stats_callbacks):
            _deliver(callback, stats.copy())
        self._enqueue(ProgressEvent(kind="stats", stats=stats.copy()))

    def close(self) -> None:
        """Stop delivery and end every pending ``async for`` iteration."""
        if self._closed:
            return
        self._closed = True
        self._log_callbacks.clear()
        self._stats_callbacks.clear()
        for queue in self._queues:
            queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        if self._closed:
            return
        queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        self._queues.append(queue)
        try:
            while True:
                event = await queue.get()
                if event is None:
                    return
                yield event
        finally:
            _discard(self._queues, queue)

    def _enqueue(self, event: ProgressEvent) -> None:
        for queue in self._queues:
            queue.put_nowait(event)


def _deliver(callback: Callable, payload: object) -> None:
    try:
        callback(payload)
    except Exception:
        logger.warning("Progress subscriber %r failed", callback, exc_info=True)


def _discard(items: list, item: object) -> None:
    try:
        items.remove(item)
    except ValueError:
        pass
