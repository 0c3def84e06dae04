"""Supervised OpenDirectoryDownloader scans: arguments, transcription, watchdog, results."""

from .arguments import build_arguments
from .extractor import extract_report
from .models import (
    ExtractedReport,
    MemorySample,
    ProcessOutcome,
    ProgressEvent,
    ScanOptions,
    ScanResult,
    Stats,
)
from .progress import ScanProgress
from .session import ScanHandle, ScanSession
from .supervisor import ProcessSupervisor, SupervisorState
from .transcriber import OutputTranscriber, TranscriberState
from .watchdog import MemoryCeiling, MemoryWatchdog

__all__ = [
    "ExtractedReport",
    "MemoryCeiling",
    "MemorySample",
    "MemoryWatchdog",
    "OutputTranscriber",
    "ProcessOutcome",
    "ProcessSupervisor",
    "ProgressEvent",
    "ScanHandle",
    "ScanOptions",
    "ScanProgress",
    "ScanResult",
    "ScanSession",
    "Stats",
    "SupervisorState",
    "TranscriberState",
    "build_arguments",
    "extract_report",
]
