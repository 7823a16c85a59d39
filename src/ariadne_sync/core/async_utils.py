"""Async utilities for bridging the blocking sync engine to async MCP handlers."""

import asyncio
import logging
from typing import Any, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# One sync run at a time per server process; the lock file guards
# against other processes.
_run_lock: asyncio.Lock | None = None


def get_run_lock() -> asyncio.Lock:
    """Return the process-wide lock serialising sync runs."""
    global _run_lock
    if _run_lock is None:
        _run_lock = asyncio.Lock()
    return _run_lock


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        # In MCP tool handler:
        report = await run_sync(engine.run, SyncOptions(dry_run=True))
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_exclusive(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Like ``run_sync`` but never runs two calls concurrently."""
    async with get_run_lock():
        logger.debug("Acquired in-process sync run lock")
        return await asyncio.to_thread(func, *args, **kwargs)
