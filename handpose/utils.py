"""Callback adapters for awaitable results."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from handpose.types import ReadyCallback


def call_callback(future: asyncio.Future[Any], callback: ReadyCallback | None) -> asyncio.Future[Any]:
    """Invoke ``callback`` error-first once ``future`` settles.

    ``callback(None, result)`` on success, ``callback(exc, None)`` on failure.
    A cancelled future does not call back. Returns ``future`` unchanged.
    """
    if callback is None:
        return future

    def _done(fut: asyncio.Future[Any]) -> None:
        if fut.cancelled():
            logger.debug("Awaitable cancelled before completion; callback skipped")
            return
        exc = fut.exception()
        if exc is not None:
            callback(exc, None)
        else:
            callback(None, fut.result())

    future.add_done_callback(_done)
    return future
