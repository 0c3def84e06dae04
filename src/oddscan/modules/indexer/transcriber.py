"""Incremental transcription of OpenDirectoryDownloader console output.

The indexer writes a free-form console log. While it runs, the transcriber

* keeps the full transcript from the moment the indexer's keyboard handler is
  up (earlier primary output is start-up noise),
* mines the statistics blocks the indexer prints whenever ``s`` is pressed,
* periodically presses ``s`` on the indexer's stdin.

The start marker, the version banner and the pid line are recognised on
complete lines, so read boundaries never hide them. Statistics are matched
per chunk. A block whose lines are split across two reads is not reassembled:
only the lines inside the chunk that carries the block header are counted, and
a chunk holding only the tail is ignored.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
from collections.abc import Callable
from enum import Enum

from .models import Stats
from .progress import ScanProgress

logger = logging.getLogger(__name__)

DEFAULT_STATS_INTERVAL = 15.0
STATS_KEY = "s"
READ_CHUNK_SIZE = 4096

START_MARKER = "Started keyboard handler"

_VERSION_REGEX = re.compile(r"OpenDirectoryDownloader v(\S+)")
_STATUS_CODES_REGEX = re.compile(
    r"Http status codes\r?\n((?:[ \t]*\d{3}:[ \t]*[\d,]+[ \t]*(?:\r?\n|$))+)"
)
_STATUS_CODE_LINE_REGEX = re.compile(r"(\d{3}):[ \t]*([\d,]+)")
_FILES_REGEX = re.compile(r"Total files: ([\d,]+), Total estimated size: ([^\r\n]+?)\s*$", re.M)
_DIRECTORIES_REGEX = re.compile(r"Total directories: ([\d,]+)")
_HTTP_REGEX = re.compile(
    r"Total HTTP requests: ([\d,]+), Total HTTP traffic: ([^\r\n]+?)\s*$", re.M
)
_QUEUE_REGEX = re.compile(
    r"Queue: ([\d,]+) \(([\d,]+) threads\), Queue \(filesizes\): ([\d,]+) \(([\d,]+) threads\)"
)


class TranscriberState(Enum):
    GATED = "gated"
    TRANSCRIBING = "transcribing"


def _to_int(value: str) -> int:
    return int(value.replace(",", ""))


class OutputTranscriber:
    """Accumulate the indexer transcript and publish live statistics."""

    def __init__(
        self,
        stats_interval: float = DEFAULT_STATS_INTERVAL,
        progress: ScanProgress | None = None,
        control_key: str = STATS_KEY,
    ):
        self.stats_interval = stats_interval
        self.progress = progress or ScanProgress()
        self.control_key = control_key
        self.state = TranscriberState.GATED
        self.stats = Stats()
        self._parts: list[str] = []
        self._line_buffers = {"primary": "", "diagnostic": ""}
        self._line_listeners: list[Callable[[str], None]] = []
        self._readers: list[asyncio.Task] = []
        self._control_task: asyncio.Task | None = None

    @property
    def transcript(self) -> str:
        return "".join(self._parts)

    def add_line_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback receiving every complete primary line, gated or not."""
        self._line_listeners.append(listener)

    # -- feeding ---------------------------------------------------------

    def feed_primary(self, text: str) -> None:
        """Consume one chunk of the indexer's stdout."""
        if not text:
            return
        pending = self._line_buffers["primary"]
        dirty = False
        for line in self._publish_lines("primary", text):
            dirty = self._on_primary_line(line) or dirty

        if self.state is TranscriberState.GATED:
            # The marker line may have begun in an earlier read.
            buffered = pending + text
            marker_at = buffered.find(START_MARKER)
            if marker_at == -1:
                if dirty:
                    self.progress.publish_stats(self.stats)
                return
            self.state = TranscriberState.TRANSCRIBING
            text = buffered[buffered.rfind("\n", 0, marker_at) + 1 :]

        self._parts.append(text)
        if self._mine_blocks(text) or dirty:
            self.progress.publish_stats(self.stats)

    def feed_diagnostic(self, text: str) -> None:
        """Consume one chunk of the indexer's stderr; never gated."""
        if not text:
            return
        self._parts.append(text)
        self._publish_lines("diagnostic", text)

    def _publish_lines(self, stream: str, text: str) -> list[str]:
        """Publish the lines completed by *text* and return them."""
        buffered = self._line_buffers[stream] + text
        *lines, rest = buffered.split("\n")
        self._line_buffers[stream] = rest
        lines = [line.rstrip("\r") for line in lines]
        for line in lines:
            self.progress.publish_log(line)
        return lines

    def _on_primary_line(self, line: str) -> bool:
        for listener in list(self._line_listeners):
            listener(line)
        return self._mine_version(line)

    def _flush_lines(self) -> None:
        for stream, rest in self._line_buffers.items():
            self._line_buffers[stream] = ""
            if not rest:
                continue
            line = rest.rstrip("\r")
            self.progress.publish_log(line)
            if stream == "primary" and self._on_primary_line(line):
                self.progress.publish_stats(self.stats)

    # -- mining ----------------------------------------------------------

    def _mine_version(self, line: str) -> bool:
        if self.stats.version is not None:
            return False
        match = _VERSION_REGEX.search(line)
        if not match:
            return False
        self.stats.version = match.group(1)
        return True

    def _mine_blocks(self, text: str) -> bool:
        dirty = False

        match = _STATUS_CODES_REGEX.search(text)
        if match:
            self.stats.status_codes = {
                int(code): _to_int(count)
                for code, count in _STATUS_CODE_LINE_REGEX.findall(match.group(1))
            }
            dirty = True

        match = _FILES_REGEX.search(text)
        if match:
            self.stats.total_files = _to_int(match.group(1))
            self.stats.total_size = match.group(2)
            dirty = True

        match = _DIRECTORIES_REGEX.search(text)
        if match:
            self.stats.total_directories = _to_int(match.group(1))
            dirty = True

        match = _HTTP_REGEX.search(text)
        if match:
            self.stats.total_http_requests = _to_int(match.group(1))
            self.stats.total_http_traffic = match.group(2)
            dirty = True

        match = _QUEUE_REGEX.search(text)
        if match:
            self.stats.url_queue = _to_int(match.group(1))
            self.stats.url_threads = _to_int(match.group(2))
            self.stats.size_queue = _to_int(match.group(3))
            self.stats.size_threads = _to_int(match.group(4))
            dirty = True

        return dirty

    # -- process wiring --------------------------------------------------

    def attach(self, process: asyncio.subprocess.Process) -> None:
        """Start reading the process output and requesting statistics."""
        loop = asyncio.get_running_loop()
        if process.stdout is not None:
            self._readers.append(
                loop.create_task(self._read_stream(process.stdout, self.feed_primary))
            )
        if process.stderr is not None:
            self._readers.append(
                loop.create_task(self._read_stream(process.stderr, self.feed_diagnostic))
            )
        if process.stdin is not None and self.stats_interval:
            self._control_task = loop.create_task(self._request_stats(process.stdin))

    async def _read_stream(
        self, stream: asyncio.StreamReader, feed: Callable[[str], None]
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                feed(decoder.decode(b"", final=True))
                return
            feed(decoder.decode(chunk))

    async def _request_stats(self, stdin: asyncio.StreamWriter) -> None:
        key = self.control_key.encode()
        while True:
            await asyncio.sleep(self.stats_interval)
            if stdin.is_closing():
                continue
            try:
                stdin.write(key)
                await stdin.drain()
            except (BrokenPipeError, ConnectionResetError, OSError) as exc:
                logger.debug("Could not request statistics from indexer: %s", exc)

    async def wait_closed(self) -> None:
        """Wait until both output streams reached EOF."""
        if self._readers:
            await asyncio.gather(*self._readers)
        self._flush_lines()

    def stop(self) -> None:
        """Cancel the statistics requests and any reader still running."""
        if self._control_task is not None:
            self._control_task.cancel()
            self._control_task = None
        for reader in self._readers:
            if not reader.done():
                reader.cancel()
