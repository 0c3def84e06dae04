"""Data models for supervised OpenDirectoryDownloader scans."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from oddscan.errors import ValidationError

SUCCESS_EXIT_CODE = 1


@dataclass
class ScanOptions:
    """Per-scan settings forwarded to the indexer or applied after it exits."""

    output_file: str | None = None
    keep_session_file: bool = False
    keep_url_list_file: bool = False
    parse_session_file: bool = True
    run_speedtest: bool = False
    upload_url_list: bool = False
    fast_scan: bool = False
    exact_sizes: bool = False
    user_agent: str = ""
    username: str | None = None
    password: str | None = None
    threads: int | None = None
    timeout: int | None = None
    stats_interval: float = 15.0
    memory_limit: int | None = None

    def validate(self) -> None:
        """Raise ValidationError when a numeric option is present but not positive."""
        for name in ("threads", "timeout", "stats_interval", "memory_limit"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValidationError(f"{name} must be a positive number, got {value!r}")


@dataclass(frozen=True)
class ProcessOutcome:
    """How the supervised process terminated: an exit code or a signal, never both."""

    returncode: int | None = None
    signal: int | None = None

    def __post_init__(self) -> None:
        if (self.returncode is None) == (self.signal is None):
            raise ValueError("exactly one of returncode or signal must be set")

    @property
    def succeeded(self) -> bool:
        # The indexer exits with 1 after a normal, completed run.
        return self.returncode == SUCCESS_EXIT_CODE


@dataclass
class Stats:
    """Counters mined from the indexer's statistics blocks."""

    version: str | None = None
    total_files: int | None = None
    total_size: str | None = None
    total_directories: int | None = None
    status_codes: dict[int, int] = field(default_factory=dict)
    total_http_requests: int | None = None
    total_http_traffic: str | None = None
    url_queue: int | None = None
    url_threads: int | None = None
    size_queue: int | None = None
    size_threads: int | None = None

    def copy(self) -> Stats:
        return replace(self, status_codes=dict(self.status_codes))

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "total_files": self.total_files,
            "total_size": self.total_size,
            "total_directories": self.total_directories,
            "status_codes": {str(code): count for code, count in self.status_codes.items()},
            "total_http_requests": self.total_http_requests,
            "total_http_traffic": self.total_http_traffic,
            "url_queue": self.url_queue,
            "url_threads": self.url_threads,
            "size_queue": self.size_queue,
            "size_threads": self.size_threads,
        }


@dataclass(frozen=True)
class MemorySample:
    """One resident-memory reading for a process."""

    pid: int
    rss: int
    taken_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class ProgressEvent:
    """A live event published while a scan is running."""

    kind: str
    line: str | None = None
    stats: Stats | None = None


@dataclass
class ExtractedReport:
    """Everything recovered from a finished transcript."""

    session_file: Path
    url_list_file: Path
    report: str
    credits: str
    sizes_incomplete: bool


@dataclass
class ScanResult:
    """Caller-facing outcome of one scan."""

    scanned_url: str
    report: str
    credits: str
    sizes_incomplete: bool
    stats: Stats
    session: dict[str, Any] | None = None
    session_file: Path | None = None
    url_list_file: Path | None = None

    def to_dict(self, include_session: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "scanned_url": self.scanned_url,
            "session_file": str(self.session_file) if self.session_file else None,
            "url_list_file": str(self.url_list_file) if self.url_list_file else None,
            "report": self.report,
            "credits": self.credits,
            "sizes_incomplete": self.sizes_incomplete,
            "stats": self.stats.to_dict(),
        }
        if include_session:
            payload["session"] = self.session
        return payload
