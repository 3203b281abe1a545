"""Single-slot debounce timer on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.150


class Debouncer:
    """Coalesce bursts of triggers so only the latest one fires.

    Every ``schedule`` cancels the pending timer (if any) and arms a new one.
    Coroutine callbacks are started as tasks that the debouncer keeps track of
    so ``cancel`` can stop them on teardown.
    """

    def __init__(self, delay_seconds: float = DEBOUNCE_SECONDS, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.delay_seconds = delay_seconds
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._pending_call: tuple[Callable[..., Any], tuple[Any, ...]] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        """Cancel any pending call and run ``callback(*args)`` after the delay."""
        if self._handle is not None:
            self._handle.cancel()
        self._pending_call = (callback, args)
        self._handle = self._event_loop().call_later(self.delay_seconds, self._fire, callback, args)

    def flush(self) -> bool:
        """Fire the pending call now instead of waiting; returns whether one was pending."""
        handle = self._handle
        if handle is None:
            return False
        handle.cancel()
        callback, args = self._pending_call
        self._fire(callback, args)
        return True

    def _fire(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._handle = None
        result = callback(*args)
        if asyncio.iscoroutine(result):
            task = self._event_loop().create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("debounced callback failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for callbacks started by fired timers to finish."""
        while self._tasks:
            tasks = list(self._tasks)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.difference_update(tasks)

    def cancel(self) -> None:
        """Cancel the pending timer and any callbacks still running."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
