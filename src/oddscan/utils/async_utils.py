"""Event loop helpers for running scans from synchronous code."""

import asyncio
import gc
import signal
import sys
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar, cast

T = TypeVar("T")


def _cancel_all_tasks(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel pending tasks (control writers, watchdogs, readers) and let them unwind."""
    tasks = asyncio.all_tasks(loop)
    for task in tasks:
        task.cancel()

    if tasks:
        loop.run_until_complete(asyncio.gather(*tasks, return_exceptions=True))


def _shutdown_loop(loop: asyncio.AbstractEventLoop) -> None:
    for shutdown in (loop.shutdown_asyncgens, loop.shutdown_default_executor):
        try:
            loop.run_until_complete(shutdown())
        except RuntimeError:
            pass


def _run_in_fresh_loop(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* in a new loop; SIGINT/SIGTERM cancel it and surface as KeyboardInterrupt."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    install_handlers = (
        sys.platform != "win32" and threading.current_thread() is threading.main_thread()
    )
    original_handlers: dict[int, Any] = {}
    interrupted = False

    def signal_handler(signum: int, frame: Any) -> None:
        nonlocal interrupted
        interrupted = True
        for task in asyncio.all_tasks(loop):
            task.cancel()

    if install_handlers:
        for signum in (signal.SIGINT, signal.SIGTERM):
            original_handlers[signum] = signal.signal(signum, signal_handler)

    try:
        return loop.run_until_complete(coro)
    except asyncio.CancelledError:
        if interrupted:
            raise KeyboardInterrupt from None
        raise
    finally:
        try:
            _cancel_all_tasks(loop)
            _shutdown_loop(loop)
        finally:
            # Collect subprocess transports while the loop can still close them.
            gc.collect()
            asyncio.set_event_loop(None)
            loop.close()

        for signum, handler in original_handlers.items():
            signal.signal(signum, handler)


def safe_async_run(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run an async coroutine with proper cleanup of the supervised process.

    If an event loop is already running in this thread (e.g. pytest-asyncio),
    the coroutine is executed in a separate thread with its own event loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return _run_in_fresh_loop(coro)

    result: T | None = None
    error: BaseException | None = None

    def _runner() -> None:
        nonlocal result, error
        try:
            result = _run_in_fresh_loop(coro)
        except BaseException as exc:
            error = exc

    thread = threading.Thread(target=_runner, daemon=True)
    thread.start()
    thread.join()

    if error is not None:
        raise error

    return cast(T, result)
