"""Periodic resident-memory sampling for the indexer process."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import psutil

from oddscan.errors import WatchdogError

from .models import MemorySample

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_PERIOD = 0.5


def read_rss(pid: int) -> int:
    """Return the resident set size of *pid* in bytes."""
    return psutil.Process(pid).memory_info().rss


class MemoryCeiling:
    """Breach policy applied to memory samples; ``None`` means unbounded."""

    def __init__(self, limit: int | None):
        self.limit = limit

    def is_breached(self, sample: MemorySample) -> bool:
        return self.limit is not None and sample.rss > self.limit


class MemoryWatchdog:
    """Sample a process's memory on a fixed period and report every reading.

    The watchdog only reports usage. Deciding whether a reading is a breach is
    left to the subscriber (see :class:`MemoryCeiling`).
    """

    def __init__(
        self,
        pid: int,
        period: float = DEFAULT_SAMPLE_PERIOD,
        sampler: Callable[[int], int] | None = None,
    ):
        self.pid = pid
        self.period = period
        self._sampler = sampler or read_rss
        self._sample_callbacks: list[Callable[[MemorySample], None]] = []
        self._error_callbacks: list[Callable[[WatchdogError], None]] = []
        self._task: asyncio.Task | None = None
        self._running = False
        self._stopped = False
        self.last_sample: MemorySample | None = None

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(
        self,
        on_sample: Callable[[MemorySample], None],
        on_error: Callable[[WatchdogError], None] | None = None,
    ) -> None:
        self._sample_callbacks.append(on_sample)
        if on_error is not None:
            self._error_callbacks.append(on_error)

    def start(self) -> None:
        """Begin sampling on the running event loop."""
        if self._running:
            return
        self._running = True
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(
            self._sample_loop(), name=f"oddscan-watchdog-{self.pid}"
        )

    def stop(self) -> None:
        """Stop sampling. Safe to call repeatedly, including from a callback."""
        self._running = False
        self._stopped = True
        self.last_sample = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _sample_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.period)
            if not self._running:
                return
            self.sample_once()

    def sample_once(self) -> MemorySample | None:
        """Take one reading and publish it; returns the sample when one was taken."""
        try:
            rss = self._sampler(self.pid)
        except psutil.NoSuchProcess:
            # The process is gone; its close event will end the scan.
            return None
        except (psutil.Error, OSError) as exc:
            error = WatchdogError(f"Could not read memory usage of pid {self.pid}: {exc}", self.pid)
            for callback in list(self._error_callbacks):
                if self._stopped:
                    break
                callback(error)
            return None

        if self._stopped:
            return None
        sample = MemorySample(pid=self.pid, rss=rss)
        self.last_sample = sample
        for callback in list(self._sample_callbacks):
            if self._stopped:
                break
            callback(sample)
        return sample
