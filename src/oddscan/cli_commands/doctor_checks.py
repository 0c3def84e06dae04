"""Individual health-check functions for ``oddscan doctor``."""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class CheckResult:
    """Outcome of a single diagnostic check."""

    name: str
    status: str  # "pass", "fail", "warn"
    message: str
    fix: str = ""


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def check_python_version() -> CheckResult:
    """Verify Python >= 3.12."""
    v = sys.version_info
    ver = f"{v.major}.{v.minor}.{v.micro}"
    if (v.major, v.minor) >= (3, 12):
        return CheckResult("Python version", "pass", f"Python {ver}")
    return CheckResult(
        "Python version", "fail", f"Python {ver} (requires >= 3.12)", fix="Install Python 3.12+"
    )


def check_executable(executable: Path) -> CheckResult:
    """The indexer binary must exist and be executable."""
    if not executable.is_file():
        return CheckResult(
            "Indexer",
            "fail",
            f"OpenDirectoryDownloader not found at {executable}",
            fix=(
                "Download a release from "
                "https://github.com/KoalaBear84/OpenDirectoryDownloader/releases\n"
                "and set ODDSCAN_EXECUTABLE to the binary path"
            ),
        )
    if not os.access(executable, os.X_OK):
        return CheckResult(
            "Indexer",
            "fail",
            f"{executable} is not executable",
            fix=f"chmod +x {executable}",
        )
    return CheckResult("Indexer", "pass", f"Indexer: {executable}")


def check_output_dir(output_dir: Path) -> CheckResult:
    """The output directory must be creatable and writable."""
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=output_dir):
            pass
    except OSError as exc:
        return CheckResult(
            "Output directory",
            "fail",
            f"Output directory {output_dir} is not writable: {exc}",
            fix="Set ODDSCAN_OUTPUT_DIR to a writable directory",
        )
    return CheckResult("Output directory", "pass", f"Output directory: {output_dir}")


def check_memory_limit(memory_limit: int | None) -> CheckResult:
    """Warn when the indexer may grow without bound."""
    if memory_limit is None:
        return CheckResult(
            "Memory limit",
            "warn",
            "No memory limit; large directories can exhaust RAM",
            fix="Set ODDSCAN_MEMORY_LIMIT (e.g. 2GiB)",
        )
    return CheckResult("Memory limit", "pass", f"Memory limit: {format_bytes(memory_limit)}")


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TiB"
