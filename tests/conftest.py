"""Test configuration and fixtures for oddscan."""

import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from oddscan.config import ScannerConfig

CREDITS_LINE = (
    "^(Created by [KoalaBear84's OpenDirectory Indexer]"
    "(https://github.com/KoalaBear84/OpenDirectoryDownloader/))"
)


def _report_table(url: str, total_size: str) -> str:
    return "\n".join(
        [
            f"|**Url**|{url}||",
            "|:-|-:|-:|",
            "|**Extension (Top 5)**|**Files**|**Size**|",
            "|.mkv|8|5.1 GiB|",
            "|.srt|2|120 KiB|",
            f"|**Dirs:** 3 **Ext:** 2|**Total:** 10|**Total:** {total_size}|",
            "|**Date (UTC):** 2024-05-01 10:00:00|**Time:** 00:00:04||",
        ]
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    """Working directory the indexer runs in."""
    path = temp_dir / "Scans"
    path.mkdir()
    return path


@pytest.fixture
def odd_transcript() -> Callable[..., str]:
    """Build a console transcript shaped like a real indexer run."""

    def build(
        url: str = "https://example.com/files/",
        total_size: str = "5.1 GiB",
        session_file: str = "example.com_files.json",
        url_list_file: str = "example.com_files.txt",
        finished: bool = True,
        nothing_found: bool = False,
        speedtest: bool = False,
    ) -> str:
        lines = [
            "OpenDirectoryDownloader v2.1.0.3",
            "Started keyboard handler",
            f"Started indexing {url}",
            "Http status codes",
            "200: 40",
            "404: 2",
            "Total files: 10, Total estimated size: 5.1 GiB",
            "Total directories: 3",
            "Total HTTP requests: 44, Total HTTP traffic: 1.2 MiB",
            "Queue: 0 (0 threads), Queue (filesizes): 0 (0 threads)",
        ]
        if finished:
            lines.append("Finished indexing")
        if nothing_found:
            lines.append("No URLs to save")
            return "\n".join(lines) + "\n"
        lines += [
            "Saving URL list to file..",
            f"Saved URL list to file: {url_list_file}",
            f"Saved session: {session_file}",
            "",
            _report_table(url, total_size),
        ]
        if speedtest:
            lines += ["", "Speed(test): 12.3 MB/s (98.4 Mbit)"]
        lines += ["", CREDITS_LINE, ""]
        return "\n".join(lines) + "\n"

    return build


@pytest.fixture
def make_stub(temp_dir: Path) -> Callable[..., Path]:
    """Write a /bin/sh stand-in for the indexer that prints a scripted transcript."""

    def make(
        transcript: str,
        exit_code: int = 1,
        stderr: str = "",
        before: str = "",
        name: str = "OpenDirectoryDownloader",
    ) -> Path:
        script = ["#!/bin/sh", 'echo "Started with PID $$"']
        if before:
            script.append(before)
        script += ["cat <<'ODD_EOF'", transcript.rstrip("\n"), "ODD_EOF"]
        if stderr:
            # Let stdout drain first so the diagnostic is the last line read.
            script.append("sleep 0.1")
            script.append(f"echo {stderr!r} >&2")
        script.append(f"exit {exit_code}")

        path = temp_dir / name
        path.write_text("\n".join(script) + "\n")
        path.chmod(0o755)
        return path

    return make


@pytest.fixture
def scanner_config(temp_dir: Path, output_dir: Path) -> Callable[..., ScannerConfig]:
    """ScannerConfig pointing at a stub executable, with fast timings."""

    def build(executable: Path, **overrides) -> ScannerConfig:
        values = {
            "executable": executable,
            "output_dir": output_dir,
            "stats_interval": 0.05,
            "sample_period": 0.05,
        }
        values.update(overrides)
        return ScannerConfig(**values)

    return build
