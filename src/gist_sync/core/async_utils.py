"""Async utilities for running blocking file and HTTP calls from the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Gist requests and file reads are blocking; wrapping them keeps other
    groups' timers and filesystem events flowing while one group waits.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        files = await run_sync(client.get_gist, gist_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
