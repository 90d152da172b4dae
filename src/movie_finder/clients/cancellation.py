"""Cancellation token shared by a search request and its timeout."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCancelled(Exception):
    """Raised when a guarded operation is abandoned through its token."""


class CancellationToken:
    """Owns the lifetime of one catalog request.

    ``guard`` races the wrapped awaitable against the timeout and against
    ``cancel()``. Whatever way the race ends, the wrapped task and the timer
    are released before ``guard`` returns or raises.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._released = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def released(self) -> bool:
        return self._released

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for task in list(self._tasks):
            task.cancel()

    def release(self) -> None:
        """Drop any task still attached to the token."""
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        self._tasks.clear()
        self._released = True

    async def guard(self, awaitable: Awaitable[T], *, timeout: float | None) -> T:
        if self._cancelled:
            _close_unawaited(awaitable)
            raise RequestCancelled("request was cancelled before it started")

        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            async with asyncio.timeout(timeout):
                return await task
        except asyncio.CancelledError:
            # Our own cancel() surfaces here as a cancelled inner task; an outer
            # cancellation of the caller must keep propagating.
            if self._cancelled and task.cancelled() and not _current_task_cancelling():
                raise RequestCancelled("request was cancelled") from None
            raise
        finally:
            self._tasks.discard(task)
            if not task.done():
                task.cancel()
            self._released = not self._tasks


def _current_task_cancelling() -> bool:
    current = asyncio.current_task()
    return bool(current and current.cancelling())


def _close_unawaited(awaitable: Awaitable) -> None:
    close = getattr(awaitable, "close", None)
    if callable(close):
        close()


__all__ = ["CancellationToken", "RequestCancelled"]
