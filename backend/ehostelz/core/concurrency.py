"""Concurrency helpers for controlling background thread usage."""

from __future__ import annotations

from typing import Any, Callable

import anyio

from ehostelz.core.config import settings

_http_sem = anyio.Semaphore(settings.HTTP_MAX_CONCURRENCY)


async def run_in_thread_limited(func: Callable[..., Any], *args: Any):
    """Run a blocking outbound call in a worker thread with bounded concurrency."""

    async with _http_sem:
        return await anyio.to_thread.run_sync(func, *args)
