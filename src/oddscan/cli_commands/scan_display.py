"""Live display panel for a running indexer scan."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from oddscan.modules.indexer import ScanHandle, ScanResult, Stats


@dataclass
class ScanProgressState:
    """Latest stats and log line for the live display."""

    stats: Stats = field(default_factory=Stats)
    last_line: str = ""
    started: float = field(default_factory=time.perf_counter)
    complete: bool = False

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.started


def _value(value: object) -> str:
    return "-" if value is None else str(value)


def create_scan_panel(state: ScanProgressState, url: str) -> Panel:
    """Build a Rich Panel showing the indexer statistics."""
    stats = state.stats
    if state.complete:
        status = Text("✓ Complete", style="green")
    else:
        status = Text("● Indexing", style="cyan")

    content = Text()
    content.append_text(status)
    content.append(f"    ⏱ {state.elapsed:.1f}s", style="dim")
    if stats.version:
        content.append(f"    ODD v{stats.version}", style="dim")

    content.append("\n")
    content.append(
        f"Files: {_value(stats.total_files)} ({_value(stats.total_size)})    "
        f"Directories: {_value(stats.total_directories)}"
    )
    content.append("\n")
    content.append(
        f"HTTP: {_value(stats.total_http_requests)} requests, "
        f"{_value(stats.total_http_traffic)}"
    )
    if stats.status_codes:
        codes = ", ".join(f"{code}: {count}" for code, count in sorted(stats.status_codes.items()))
        content.append("\n")
        content.append(f"Status codes: {codes}", style="green")
    content.append("\n")
    content.append(
        f"Queues: urls {_value(stats.url_queue)} ({_value(stats.url_threads)} threads), "
        f"sizes {_value(stats.size_queue)} ({_value(stats.size_threads)} threads)",
        style="dim",
    )
    if state.last_line and not state.complete:
        line = state.last_line if len(state.last_line) <= 80 else state.last_line[:77] + "..."
        content.append("\n")
        content.append(line, style="dim italic")

    return Panel(
        content,
        title="[bold cyan]Open Directory Scan[/]",
        subtitle=f"[dim]{url}[/]",
        border_style="cyan",
        padding=(0, 1),
    )


async def run_scan_with_live_display(handle: ScanHandle, console: Any) -> ScanResult:
    """Await *handle* while rendering its progress in a Rich Live panel."""
    state = ScanProgressState()

    def on_stats(stats: Stats) -> None:
        state.stats = stats

    def on_log(line: str) -> None:
        if line.strip():
            state.last_line = line.strip()

    handle.progress.on_stats(on_stats)
    handle.progress.on_log(on_log)

    with Live(create_scan_panel(state, handle.url), console=console, refresh_per_second=4) as live:
        while not handle.done():
            await asyncio.sleep(0.25)
            live.update(create_scan_panel(state, handle.url))

        state.complete = True
        live.update(create_scan_panel(state, handle.url))

    return handle.result()
