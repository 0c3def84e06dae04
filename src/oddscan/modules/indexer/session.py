"""One-call scan orchestration with a live progress handle."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

from oddscan.config import ScannerConfig
from oddscan.errors import PartialSuccessError, SpawnError, ValidationError

from .arguments import build_arguments
from .extractor import extract_report
from .models import ScanOptions, ScanResult
from .progress import ScanProgress
from .supervisor import ProcessSupervisor
from .transcriber import OutputTranscriber

logger = logging.getLogger(__name__)


class ScanHandle:
    """A running scan: await it for the ScanResult, watch ``progress`` meanwhile."""

    def __init__(self, url: str, task: asyncio.Task[ScanResult], progress: ScanProgress):
        self.url = url
        self.task = task
        self.progress = progress

    def __await__(self) -> Generator[Any, None, ScanResult]:
        return self.task.__await__()

    def done(self) -> bool:
        return self.task.done()

    def result(self) -> ScanResult:
        return self.task.result()


class ScanSession:
    """Run OpenDirectoryDownloader scans with a fixed ScannerConfig."""

    def __init__(self, config: ScannerConfig):
        self.config = config

    def start(self, url: str, options: ScanOptions | None = None) -> ScanHandle:
        """Validate input, then schedule the scan on the running loop.

        Input problems raise ``ValidationError`` here, before anything is spawned.
        """
        if options is None:
            options = ScanOptions(stats_interval=self.config.stats_interval)
        url = str(url or "").strip()
        if not url:
            raise ValidationError("A URL to scan is required")
        arguments = build_arguments(url, options)

        executable = Path(self.config.executable)
        if not executable.is_file() or not os.access(executable, os.X_OK):
            raise SpawnError(f"OpenDirectoryDownloader executable not found at {executable}")
        self.config.output_dir.mkdir(parents=True, exist_ok=True)

        progress = ScanProgress()
        task = asyncio.get_running_loop().create_task(
            self._run(url, options, arguments, progress), name=f"oddscan-{url}"
        )
        return ScanHandle(url, task, progress)

    async def scan_url(self, url: str, options: ScanOptions | None = None) -> ScanResult:
        return await self.start(url, options)

    async def _run(
        self,
        url: str,
        options: ScanOptions,
        arguments: list[str],
        progress: ScanProgress,
    ) -> ScanResult:
        transcriber = OutputTranscriber(
            stats_interval=options.stats_interval or self.config.stats_interval,
            progress=progress,
        )
        supervisor = ProcessSupervisor(
            executable=self.config.executable,
            output_dir=self.config.output_dir,
            transcriber=transcriber,
            memory_limit=options.memory_limit or self.config.memory_limit,
            sample_period=self.config.sample_period,
        )
        try:
            transcript = await supervisor.run(arguments)
            extracted = extract_report(transcript, speedtest=options.run_speedtest)
        finally:
            progress.close()

        session_file = self._resolve(extracted.session_file)
        url_list_file = self._resolve(extracted.url_list_file)
        if not options.keep_url_list_file:
            _remove_quietly(url_list_file)

        result = ScanResult(
            scanned_url=url,
            report=extracted.report,
            credits=extracted.credits,
            sizes_incomplete=extracted.sizes_incomplete,
            stats=transcriber.stats.copy(),
            session_file=session_file if options.keep_session_file else None,
            url_list_file=url_list_file if options.keep_url_list_file else None,
        )

        try:
            if options.parse_session_file:
                result.session = _load_session(session_file)
        except (OSError, ValueError) as exc:
            raise PartialSuccessError(
                f"Error while reading in the scan results: {exc}", result=result
            ) from exc
        finally:
            if not options.keep_session_file:
                _remove_quietly(session_file)

        return result

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.config.output_dir / path


def _load_session(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8-sig") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"session file {path} does not hold a JSON object")
    return data


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError as exc:
        logger.debug("Could not delete %s: %s", path, exc)
