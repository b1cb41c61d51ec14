"""Cancellable timers owned by a session's lifecycle."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], "Awaitable[None] | None"]


async def _invoke(callback: Callback) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


class ExpiringFlag:
    """Boolean that falls back to False ``ttl`` seconds after the last ``set``.

    Every ``set`` re-arms the expiry timer.
    """

    def __init__(self, ttl: float, *, on_change: Callable[[bool], "Awaitable[None] | None"] | None = None) -> None:
        self.ttl = ttl
        self._on_change = on_change
        self._value = False
        self._timer: asyncio.Task[None] | None = None

    @property
    def value(self) -> bool:
        return self._value

    async def set(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.create_task(self._expire())
        if not self._value:
            self._value = True
            await self._changed()

    async def _expire(self) -> None:
        await asyncio.sleep(self.ttl)
        self._timer = None
        self._value = False
        await self._changed()

    async def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            result = self._on_change(self._value)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Expiring flag listener failed")

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._value = False


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until stopped.

    Callback failures are logged and the loop keeps going.
    """

    def __init__(self, interval: float, callback: Callback, *, name: str, run_immediately: bool = True) -> None:
        self.interval = interval
        self.name = name
        self._callback = callback
        self._run_immediately = run_immediately
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def _loop(self) -> None:
        if not self._run_immediately:
            if await self._wait():
                return
        while not self._stop.is_set():
            try:
                await _invoke(self._callback)
            except Exception:
                logger.exception("Periodic task %s failed", self.name)
            if await self._wait():
                return

    async def _wait(self) -> bool:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def stop(self) -> None:
        self._stop.set()
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


__all__ = ["ExpiringFlag", "PeriodicTask"]
