"""Spawn and supervise one OpenDirectoryDownloader process."""

from __future__ import annotations

import asyncio
import logging
import re
import shlex
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import psutil

from oddscan.errors import (
    OddScanError,
    ProcessExitError,
    ResourceLimitExceeded,
    SpawnError,
    WatchdogError,
)

from .arguments import redact_arguments
from .models import MemorySample, ProcessOutcome
from .transcriber import OutputTranscriber
from .watchdog import DEFAULT_SAMPLE_PERIOD, MemoryCeiling, MemoryWatchdog

logger = logging.getLogger(__name__)

PID_MARKER_REGEX = re.compile(r"Started with PID (\d+)\s*$")

# Exit statuses produced by /bin/sh itself rather than by the indexer.
_SHELL_CANNOT_EXECUTE = {126, 127}
_SHELL_SIGNAL_BASE = 128


class SupervisorState(Enum):
    IDLE = "idle"
    PID_DISCOVERED = "pid_discovered"
    MONITORING = "monitoring"
    CLOSED = "closed"


def interpret_exit(returncode: int) -> ProcessOutcome:
    """Turn a wait status into an exit code or a terminating signal."""
    if returncode < 0:
        return ProcessOutcome(signal=-returncode)
    if _SHELL_SIGNAL_BASE < returncode < _SHELL_SIGNAL_BASE + 32:
        # The shell reports a child killed by signal N as 128 + N.
        return ProcessOutcome(signal=returncode - _SHELL_SIGNAL_BASE)
    return ProcessOutcome(returncode=returncode)


def check_outcome(outcome: ProcessOutcome, diagnostics: str = "") -> None:
    """Raise the failure matching *outcome*; return quietly on success."""
    detail = _last_line(diagnostics)
    suffix = f": {detail}" if detail else ""
    if outcome.signal is not None:
        raise ProcessExitError(
            f"OpenDirectoryDownloader was killed by signal {outcome.signal}{suffix}",
            signal=outcome.signal,
        )
    if outcome.returncode in _SHELL_CANNOT_EXECUTE:
        raise SpawnError(
            f"OpenDirectoryDownloader could not be executed "
            f"(exit code {outcome.returncode}){suffix}",
            returncode=outcome.returncode,
        )
    if not outcome.succeeded:
        raise ProcessExitError(
            f"OpenDirectoryDownloader exited with code {outcome.returncode}{suffix}",
            returncode=outcome.returncode,
        )


def _last_line(text: str) -> str:
    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
    return lines[-1] if lines else ""


class ProcessSupervisor:
    """Run the indexer, watch its memory and report how it ended.

    States move ``IDLE -> PID_DISCOVERED -> MONITORING -> CLOSED``. A watchdog
    only exists while ``MONITORING``; a close before the pid marker simply
    skips monitoring.
    """

    def __init__(
        self,
        executable: str | Path,
        output_dir: str | Path,
        transcriber: OutputTranscriber,
        memory_limit: int | None = None,
        sample_period: float = DEFAULT_SAMPLE_PERIOD,
        watchdog_factory: Callable[..., MemoryWatchdog] = MemoryWatchdog,
    ):
        self.executable = str(executable)
        self.output_dir = Path(output_dir)
        self.transcriber = transcriber
        self.ceiling = MemoryCeiling(memory_limit)
        self.sample_period = sample_period
        self._watchdog_factory = watchdog_factory
        self.state = SupervisorState.IDLE
        self.pid: int | None = None
        self.last_usage: MemorySample | None = None
        self.outcome: ProcessOutcome | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._watchdog: MemoryWatchdog | None = None
        self._failure: OddScanError | None = None
        self._output_tail: list[str] = []

    def build_command(self, arguments: list[str]) -> str:
        return " ".join([shlex.quote(self.executable), *arguments])

    async def run(self, arguments: list[str]) -> str:
        """Run the indexer to completion and return its transcript.

        Raises:
            SpawnError: the process could not be started.
            ResourceLimitExceeded: memory went over the ceiling; the process was killed.
            WatchdogError: memory could not be sampled while a ceiling is set.
            ProcessExitError: the process was killed or exited with a failure code.
        """
        command = self.build_command(arguments)
        logger.debug(
            "Spawning indexer in %s: %s",
            self.output_dir,
            self.build_command(redact_arguments(arguments)),
        )
        self.transcriber.add_line_listener(self._on_primary_line)
        self.transcriber.progress.on_log(self._record_output_tail)

        started = time.perf_counter()
        try:
            self._process = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.output_dir),
            )
        except OSError as exc:
            self.state = SupervisorState.CLOSED
            raise SpawnError(f"Could not start OpenDirectoryDownloader: {exc}") from exc

        try:
            self.transcriber.attach(self._process)
            await self.transcriber.wait_closed()
            returncode = await self._process.wait()
        finally:
            self.transcriber.stop()
            self._stop_watchdog()
            self.state = SupervisorState.CLOSED

        elapsed = time.perf_counter() - started
        logger.info("Indexer exited with status %s after %.1fs", returncode, elapsed)

        if self._failure is not None:
            raise self._failure
        self.outcome = interpret_exit(returncode)
        check_outcome(self.outcome, "\n".join(self._output_tail))
        return self.transcriber.transcript

    # -- pid discovery and monitoring -----------------------------------

    def _on_primary_line(self, line: str) -> None:
        if self.state is not SupervisorState.IDLE:
            return
        match = PID_MARKER_REGEX.search(line)
        if not match:
            return
        self.pid = int(match.group(1))
        self.state = SupervisorState.PID_DISCOVERED
        logger.debug("Indexer reported pid %s", self.pid)

        self._watchdog = self._watchdog_factory(self.pid, period=self.sample_period)
        self._watchdog.subscribe(self._on_usage, self._on_watchdog_error)
        self._watchdog.start()
        self.state = SupervisorState.MONITORING

    def _on_usage(self, sample: MemorySample) -> None:
        if self.state is not SupervisorState.MONITORING:
            return
        self.last_usage = sample
        if not self.ceiling.is_breached(sample):
            return
        logger.warning(
            "Indexer pid %s uses %s bytes, over the %s byte limit; killing it",
            sample.pid,
            sample.rss,
            self.ceiling.limit,
        )
        self._terminate()
        self._failure = ResourceLimitExceeded(
            f"OpenDirectoryDownloader used {sample.rss} bytes of memory "
            f"(limit {self.ceiling.limit})",
            usage=sample.rss,
            limit=self.ceiling.limit,
        )

    def _on_watchdog_error(self, error: WatchdogError) -> None:
        if self.state is not SupervisorState.MONITORING:
            return
        if self.ceiling.limit is None:
            logger.warning("%s; memory monitoring stopped", error)
            self._stop_watchdog()
            return
        logger.warning("%s; the memory limit cannot be enforced, killing the indexer", error)
        self._terminate()
        self._failure = error

    def _terminate(self) -> None:
        if self.pid is not None:
            try:
                psutil.Process(self.pid).kill()
            except psutil.NoSuchProcess:
                pass
            except psutil.Error as exc:
                logger.warning("Could not kill indexer pid %s: %s", self.pid, exc)
        # The shell wrapper can outlive the indexer itself.
        if self._process is not None and self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        self._stop_watchdog()

    def _stop_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.stop()
            self._watchdog = None
        self.last_usage = None

    def _record_output_tail(self, line: str) -> None:
        self._output_tail.append(line)
        del self._output_tail[:-20]
