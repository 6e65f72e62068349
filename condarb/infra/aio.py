"""Run blocking client calls off the event loop."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Optional


async def call_blocking(func: Any, *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> Any:
    """Await ``func`` (or run it in a worker thread), bounded by ``timeout`` when given."""

    if inspect.iscoroutinefunction(func):
        return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
    return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout=timeout)


__all__ = ["call_blocking"]
