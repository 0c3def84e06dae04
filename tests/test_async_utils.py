"""Tests for running scans from synchronous code."""

import asyncio

import pytest

from oddscan.utils.async_utils import safe_async_run


async def _answer() -> int:
    await asyncio.sleep(0)
    return 42


async def _fail() -> None:
    await asyncio.sleep(0)
    raise RuntimeError("indexer crashed")


def test_runs_without_loop():
    assert safe_async_run(_answer()) == 42


def test_exceptions_propagate():
    with pytest.raises(RuntimeError, match="indexer crashed"):
        safe_async_run(_fail())


def test_leftover_tasks_are_cancelled():
    started = asyncio.Event()
    cancelled = []

    async def background():
        started.set()
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def main():
        asyncio.get_running_loop().create_task(background())
        await started.wait()
        return "done"

    assert safe_async_run(main()) == "done"
    assert cancelled == [True]


@pytest.mark.asyncio
async def test_runs_inside_running_loop():
    assert safe_async_run(_answer()) == 42
