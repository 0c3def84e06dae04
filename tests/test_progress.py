"""Tests for the live progress channel."""

import asyncio

import pytest

from oddscan.modules.indexer import ScanProgress, Stats


def test_callbacks_receive_events_in_order():
    progress = ScanProgress()
    lines = []
    progress.on_log(lines.append)
    for line in ("one", "two", "three"):
        progress.publish_log(line)
    assert lines == ["one", "two", "three"]
    assert progress.recent_lines == ["one", "two", "three"]


def test_unsubscribe():
    progress = ScanProgress()
    lines = []
    unsubscribe = progress.on_log(lines.append)
    progress.publish_log("a")
    unsubscribe()
    unsubscribe()
    progress.publish_log("b")
    assert lines == ["a"]


def test_stats_subscribers_get_independent_copies():
    progress = ScanProgress()
    received = []
    progress.on_stats(received.append)
    stats = Stats(status_codes={200: 1})
    progress.publish_stats(stats)
    received[0].status_codes[404] = 9
    assert stats.status_codes == {200: 1}
    assert progress.latest_stats.status_codes == {200: 1}


def test_nothing_delivered_after_close():
    progress = ScanProgress()
    lines, stats = [], []
    progress.on_log(lines.append)
    progress.on_stats(stats.append)
    progress.close()
    progress.publish_log("late")
    progress.publish_stats(Stats())
    assert lines == [] and stats == []
    assert progress.closed


def test_failing_subscriber_does_not_block_others(caplog):
    progress = ScanProgress()
    lines = []

    def broken(line):
        raise RuntimeError("boom")

    progress.on_log(broken)
    progress.on_log(lines.append)
    progress.publish_log("x")
    assert lines == ["x"]
    assert "Progress subscriber" in caplog.text


def test_recent_lines_bounded():
    progress = ScanProgress(recent_lines=2)
    for line in ("a", "b", "c"):
        progress.publish_log(line)
    assert progress.recent_lines == ["b", "c"]


@pytest.mark.asyncio
async def test_async_iteration_ends_on_close():
    progress = ScanProgress()
    events = []

    async def consume():
        async for event in progress:
            events.append(event)

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    progress.publish_log("line")
    progress.publish_stats(Stats(total_files=3))
    progress.close()
    await asyncio.wait_for(consumer, timeout=1)

    assert [e.kind for e in events] == ["log", "stats"]
    assert events[0].line == "line"
    assert events[1].stats.total_files == 3


@pytest.mark.asyncio
async def test_async_iteration_on_closed_channel_is_empty():
    progress = ScanProgress()
    progress.close()
    events = [event async for event in progress]
    assert events == []
