"""Timer and background-task scheduling for the in-memory cache.

The cache engine never touches the event loop directly.  It asks a
:class:`Scheduler` for the current time, for one-shot and repeating timers,
and to spawn background coroutines.  :class:`AsyncioScheduler` is the
production implementation built on the running :mod:`asyncio` loop; tests
substitute a scheduler with a manually advanced clock.

Timers created through the loop's ``call_later`` do not keep a program
alive: once the coroutine passed to :func:`asyncio.run` returns, pending
timers are simply dropped with the loop.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Coroutine, Optional


class TimerHandle(ABC):
    """A cancelable scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the timer.  Safe to call more than once."""

    @abstractmethod
    def restart(self) -> None:
        """Restart the countdown from now with the original delay.

        Has no effect on a canceled timer.
        """


class Scheduler(ABC):
    """Source of time, timers and background tasks for the cache engine."""

    @abstractmethod
    def now(self) -> float:
        """Return the current wall-clock time in milliseconds since the epoch."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* once after *delay_ms* milliseconds."""

    @abstractmethod
    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* every *interval_ms* milliseconds until canceled."""

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run *coro* in the background and return its task."""


class _LoopTimeout(TimerHandle):
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        delay_ms: float,
        callback: Callable[[], None],
    ) -> None:
        self._loop = loop
        self._delay = delay_ms / 1000
        self._callback = callback
        self._canceled = False
        self._handle: Optional[asyncio.TimerHandle] = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._callback()

    def cancel(self) -> None:
        self._canceled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def restart(self) -> None:
        if self._canceled:
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_later(self._delay, self._fire)


class _LoopInterval(TimerHandle):
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval_ms: float,
        callback: Callable[[], None],
    ) -> None:
        self._loop = loop
        self._interval = interval_ms / 1000
        self._callback = callback
        self._canceled = False
        self._handle = loop.call_later(self._interval, self._tick)

    def _tick(self) -> None:
        # Re-arm first so a callback that cancels the timer wins.
        self._handle = self._loop.call_later(self._interval, self._tick)
        self._callback()

    def cancel(self) -> None:
        self._canceled = True
        self._handle.cancel()

    def restart(self) -> None:
        if self._canceled:
            return
        self._handle.cancel()
        self._handle = self._loop.call_later(self._interval, self._tick)


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running :mod:`asyncio` event loop.

    Timers and tasks are always attached to the loop running at the time
    they are created, so a cache instance can be constructed outside of any
    loop and used later inside one.

    Args:
        clock: Wall-clock source in seconds.  Defaults to :func:`time.time`.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def now(self) -> float:
        return self._clock() * 1000

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return _LoopTimeout(asyncio.get_running_loop(), delay_ms, callback)

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return _LoopInterval(asyncio.get_running_loop(), interval_ms, callback)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(coro)
