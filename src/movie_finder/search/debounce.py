"""Coalesce rapid input into one settled value."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DELAY = 1.0


class Debouncer(Generic[T]):
    """Emit the latest pushed value once input has been quiet for ``delay`` seconds.

    Every ``push`` restarts the quiescence window, so a burst of input yields a
    single emission carrying the last value. ``callback`` may be a plain
    function or a coroutine function; coroutine emissions run as tasks owned by
    the debouncer and are cancelled by ``close()``.
    """

    def __init__(self, callback: Callable[[T], Any], *, delay: float = DEFAULT_DELAY) -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self._callback = callback
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._value: T | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, value: T) -> None:
        if self._closed:
            raise RuntimeError("Debouncer is closed")
        self._value = value
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._settle)

    def cancel(self) -> None:
        """Drop the pending value without emitting it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._value = None

    def close(self) -> None:
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._closed = True

    async def drain(self) -> None:
        """Wait for emissions that are already running."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _settle(self) -> None:
        self._handle = None
        value = self._value
        self._value = None
        logger.debug(f"[DEBOUNCE] settled on {value!r}")

        result = self._callback(value)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Debounced callback failed: {task.exception()}")


__all__ = ["DEFAULT_DELAY", "Debouncer"]
