"""Typed failures raised while supervising an OpenDirectoryDownloader scan."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from oddscan.modules.indexer.models import ScanResult


class OddScanError(Exception):
    """Base class for every scan failure.

    ``context`` carries structured details (usage/limit, exit status, partial
    results) so callers do not need to parse the message.
    """

    kind = "error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ValidationError(OddScanError, ValueError):
    """Missing or invalid caller input."""

    kind = "validation"


class SpawnError(OddScanError):
    """The indexer process could not be started."""

    kind = "spawn"


class ProcessExitError(OddScanError):
    """The indexer exited abnormally or was killed by a signal."""

    kind = "process_exit"

    def __init__(self, message: str, returncode: int | None = None, signal: int | None = None):
        super().__init__(message, returncode=returncode, signal=signal)
        self.returncode = returncode
        self.signal = signal


class ResourceLimitExceeded(OddScanError):
    """The indexer's resident memory went over the configured ceiling."""

    kind = "resource_limit"

    def __init__(self, message: str, usage: int, limit: int):
        super().__init__(message, usage=usage, limit=limit)
        self.usage = usage
        self.limit = limit


class WatchdogError(OddScanError):
    """Memory usage of the indexer could not be sampled."""

    kind = "watchdog"

    def __init__(self, message: str, pid: int):
        super().__init__(message, pid=pid)
        self.pid = pid


class ProtocolParseError(OddScanError):
    """The transcript is missing a marker of the known output grammar."""

    kind = "protocol"


class SessionFileNotFoundError(ProtocolParseError):
    kind = "session_file_not_found"


class UrlListFileNotFoundError(ProtocolParseError):
    kind = "url_list_file_not_found"


class EmptyResultError(OddScanError):
    """The indexer reported that it found no files or directories."""

    kind = "empty_result"


class PartialSuccessError(OddScanError):
    """Extraction worked but the session file could not be loaded.

    ``result`` holds everything recovered apart from the parsed session.
    """

    kind = "partial_success"

    def __init__(self, message: str, result: ScanResult):
        super().__init__(message, result=result)
        self.result = result
