"""Tests for incremental transcript capture and statistics mining."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from oddscan.modules.indexer import OutputTranscriber, ScanProgress, TranscriberState

STATUS_BLOCK = "Http status codes\n200: 40\n404: 2\n"
FILES_LINE = "Total files: 1,204, Total estimated size: 5.1 GiB\n"


@pytest.fixture
def transcriber() -> OutputTranscriber:
    t = OutputTranscriber(progress=ScanProgress())
    t.feed_primary("Started keyboard handler\n")
    return t


class TestGating:
    def test_output_before_marker_is_dropped(self):
        t = OutputTranscriber()
        t.feed_primary("Started with PID 4242\nWarming up\n")
        assert t.state is TranscriberState.GATED
        assert t.transcript == ""

    def test_transcript_starts_at_marker_line(self):
        t = OutputTranscriber()
        t.feed_primary("noise\n[12:00] Started keyboard handler\nIndexing\n")
        assert t.state is TranscriberState.TRANSCRIBING
        assert t.transcript == "[12:00] Started keyboard handler\nIndexing\n"

    def test_everything_after_marker_is_kept(self, transcriber):
        transcriber.feed_primary("a\n")
        transcriber.feed_primary("b\n")
        assert transcriber.transcript == "Started keyboard handler\na\nb\n"

    def test_diagnostics_are_never_gated(self):
        t = OutputTranscriber()
        t.feed_diagnostic("Unhandled exception\n")
        assert t.transcript == "Unhandled exception\n"

    def test_version_is_read_from_gated_output(self):
        t = OutputTranscriber()
        t.feed_primary("OpenDirectoryDownloader v2.1.0.3\n")
        assert t.state is TranscriberState.GATED
        assert t.stats.version == "2.1.0.3"


class TestStatusCodes:
    def test_whole_block(self, transcriber):
        transcriber.feed_primary(STATUS_BLOCK)
        assert transcriber.stats.status_codes == {200: 40, 404: 2}

    def test_split_on_section_boundary(self, transcriber):
        transcriber.feed_primary(STATUS_BLOCK)
        transcriber.feed_primary(FILES_LINE)
        assert transcriber.stats.status_codes == {200: 40, 404: 2}
        assert transcriber.stats.total_files == 1204

    def test_split_inside_block_is_not_merged(self, transcriber):
        transcriber.feed_primary("Http status codes\n200: 40\n")
        transcriber.feed_primary("404: 2\n")
        assert transcriber.stats.status_codes == {200: 40}

    def test_newer_block_replaces_older(self, transcriber):
        transcriber.feed_primary(STATUS_BLOCK)
        transcriber.feed_primary("Http status codes\n200: 90\n")
        assert transcriber.stats.status_codes == {200: 90}


def test_all_counters_mined(transcriber):
    transcriber.feed_primary(
        "Total files: 10, Total estimated size: 5.1 GiB\n"
        "Total directories: 3\n"
        "Total HTTP requests: 1,044, Total HTTP traffic: 1.2 MiB\n"
        "Queue: 12 (4 threads), Queue (filesizes): 7 (2 threads)\n"
    )
    stats = transcriber.stats
    assert (stats.total_files, stats.total_size) == (10, "5.1 GiB")
    assert stats.total_directories == 3
    assert (stats.total_http_requests, stats.total_http_traffic) == (1044, "1.2 MiB")
    assert (stats.url_queue, stats.url_threads) == (12, 4)
    assert (stats.size_queue, stats.size_threads) == (7, 2)


def test_stats_published_only_when_something_changed():
    progress = ScanProgress()
    published = []
    progress.on_stats(published.append)
    t = OutputTranscriber(progress=progress)
    t.feed_primary("Started keyboard handler\nnothing to see\n")
    assert published == []
    t.feed_primary("Total directories: 3\n")
    assert len(published) == 1
    assert published[0].total_directories == 3


def test_log_lines_published_across_chunks():
    progress = ScanProgress()
    lines = []
    progress.on_log(lines.append)
    t = OutputTranscriber(progress=progress)
    t.feed_primary("first\nsec")
    t.feed_primary("ond\r\nthi")
    assert lines == ["first", "second"]


@pytest.mark.asyncio
async def test_partial_line_flushed_when_streams_close():
    progress = ScanProgress()
    lines = []
    progress.on_log(lines.append)
    t = OutputTranscriber(progress=progress)
    t.feed_primary("done\nno newline")
    await t.wait_closed()
    assert lines == ["done", "no newline"]


def test_line_listeners_see_gated_lines_whole():
    lines = []
    t = OutputTranscriber()
    t.add_line_listener(lines.append)
    t.feed_primary("Started with PID 12")
    assert lines == []
    t.feed_primary("345\r\nWarming up\n")
    assert lines == ["Started with PID 12345", "Warming up"]
    assert t.transcript == ""


def test_line_listeners_get_final_partial_line():
    lines = []
    t = OutputTranscriber()
    t.add_line_listener(lines.append)
    t.feed_primary("Started with PID 7")
    t._flush_lines()
    assert lines == ["Started with PID 7"]


class TestSplitMarkers:
    def test_start_marker_split_across_reads(self):
        t = OutputTranscriber()
        t.feed_primary("Started with PID 1\nStarted keyb")
        assert t.state is TranscriberState.GATED
        t.feed_primary("oard handler\nFinished indexing\n")
        assert t.state is TranscriberState.TRANSCRIBING
        assert t.transcript == "Started keyboard handler\nFinished indexing\n"

    def test_start_marker_split_over_three_reads(self):
        t = OutputTranscriber()
        t.feed_primary("noise\n[12:00] Start")
        t.feed_primary("ed keyboard ")
        t.feed_primary("handler\nIndexing\n")
        assert t.transcript == "[12:00] Started keyboard handler\nIndexing\n"

    def test_version_banner_split_across_reads(self):
        progress = ScanProgress()
        published = []
        progress.on_stats(published.append)
        t = OutputTranscriber(progress=progress)
        t.feed_primary("OpenDirectoryDownloader v2.1")
        assert t.stats.version is None
        t.feed_primary(".0.3\n")
        assert t.stats.version == "2.1.0.3"
        assert published[-1].version == "2.1.0.3"


def _fake_process(stdout: bytes, stderr: bytes = b"") -> Mock:
    process = Mock()
    process.stdout = asyncio.StreamReader()
    process.stdout.feed_data(stdout)
    process.stdout.feed_eof()
    process.stderr = asyncio.StreamReader()
    process.stderr.feed_data(stderr)
    process.stderr.feed_eof()
    process.stdin = Mock()
    process.stdin.is_closing = Mock(return_value=False)
    process.stdin.drain = AsyncMock()
    return process


@pytest.mark.asyncio
async def test_attach_reads_both_streams():
    process = _fake_process(
        "Started keyboard handler\nTotal directories: 5\n".encode(), b"warning\n"
    )
    t = OutputTranscriber(stats_interval=0)
    t.attach(process)
    await t.wait_closed()
    t.stop()
    assert "Total directories: 5" in t.transcript
    assert "warning" in t.transcript
    assert t.stats.total_directories == 5


@pytest.mark.asyncio
async def test_multibyte_characters_split_across_reads():
    process = _fake_process(b"")
    process.stdout = asyncio.StreamReader()
    encoded = "Started keyboard handler\nFichier: é\n".encode()
    split = encoded.index("é".encode()) + 1
    t = OutputTranscriber(stats_interval=0)
    t.attach(process)
    process.stdout.feed_data(encoded[:split])
    await asyncio.sleep(0)
    process.stdout.feed_data(encoded[split:])
    process.stdout.feed_eof()
    await t.wait_closed()
    t.stop()
    assert "Fichier: é" in t.transcript


@pytest.mark.asyncio
async def test_stats_key_written_periodically():
    process = _fake_process(b"")
    t = OutputTranscriber(stats_interval=0.01)
    t.attach(process)
    await asyncio.sleep(0.05)
    t.stop()
    process.stdin.write.assert_called_with(b"s")


@pytest.mark.asyncio
async def test_broken_stdin_does_not_fail_the_scan():
    process = _fake_process(b"")
    process.stdin.drain = AsyncMock(side_effect=BrokenPipeError())
    t = OutputTranscriber(stats_interval=0.01)
    t.attach(process)
    await asyncio.sleep(0.05)
    control = t._control_task
    assert control is not None and not control.done()
    t.stop()
