import asyncio
from typing import Awaitable, Callable, Optional, Protocol, Set

import structlog

logger = structlog.get_logger()


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerService(Protocol):
    """Schedules callbacks and background requests on the guard's event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def spawn(self, coro: Awaitable[None]) -> None:
        """Run a coroutine without blocking the caller."""
        ...


class _RepeatingHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._next: Optional[asyncio.TimerHandle] = loop.call_later(interval, self._tick)

    def _tick(self) -> None:
        if self._cancelled:
            return
        # Re-arm before running so a slow callback does not drift the cadence
        self._next = self._loop.call_later(self._interval, self._tick)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._next is not None:
            self._next.cancel()
            self._next = None


class AsyncioTimerService:
    """TimerService backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._tasks: Set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._loop.call_later(delay, callback)

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        return _RepeatingHandle(self._loop, interval, callback)

    def spawn(self, coro: Awaitable[None]) -> None:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("session_task_failed", error=str(exc), exc_info=exc)

    async def drain(self) -> None:
        """Wait for spawned requests still in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
