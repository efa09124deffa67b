"""Shared test fixtures for cacheme.

Provides a :class:`ManualScheduler` that replaces the asyncio-backed
scheduler with a virtual clock, plus small helpers for counting calls of
memoized functions.  These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Callable, Coroutine

import pytest

from cacheme.timers import Scheduler, TimerHandle

START_MS = 1_700_000_000_000.0


# ---------------------------------------------------------------------------
# Virtual time
# ---------------------------------------------------------------------------


class _ManualTimer(TimerHandle):
    def __init__(
        self,
        scheduler: "ManualScheduler",
        delay_ms: float,
        callback: Callable[[], None],
        repeat: bool,
    ) -> None:
        self._scheduler = scheduler
        self.delay = delay_ms
        self.callback = callback
        self.repeat = repeat
        self.active = True
        self.due = scheduler.now() + delay_ms

    def cancel(self) -> None:
        self.active = False

    def restart(self) -> None:
        if self.active:
            self.due = self._scheduler.now() + self.delay


class ManualScheduler(Scheduler):
    """Scheduler whose clock only moves when a test calls :meth:`advance`.

    Timers fire in due order while time advances.  Spawned coroutines run
    as real asyncio tasks; :meth:`settle` waits until all of them finished,
    so assertions after ``await scheduler.settle()`` see the effects of
    background refreshes.
    """

    def __init__(self, start_ms: float = START_MS) -> None:
        self._now = start_ms
        self._timers: list[_ManualTimer] = []
        self.tasks: list[asyncio.Task] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self, delay_ms, callback, repeat=False)
        self._timers.append(timer)
        return timer

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self, interval_ms, callback, repeat=True)
        self._timers.append(timer)
        return timer

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.append(task)
        return task

    @property
    def active_timers(self) -> int:
        return sum(1 for timer in self._timers if timer.active)

    async def settle(self) -> None:
        """Wait for every spawned task, including tasks spawned meanwhile."""
        while True:
            pending = [task for task in self.tasks if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        await asyncio.sleep(0)

    def shift(self, ms: float) -> None:
        """Move the clock without firing timers or waiting for tasks."""
        self._now += ms

    async def advance(self, ms: float) -> None:
        """Move the clock forward by *ms*, firing due timers in order."""
        target = self._now + ms
        while True:
            due = [t for t in self._timers if t.active and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._now = max(self._now, timer.due)
            if timer.repeat:
                timer.due += timer.delay
            else:
                timer.active = False
            timer.callback()
            await self.settle()
        self._now = target
        await self.settle()


@pytest.fixture
def scheduler() -> ManualScheduler:
    """A virtual-time scheduler starting at a fixed epoch timestamp."""
    return ManualScheduler()


# ---------------------------------------------------------------------------
# Call counting
# ---------------------------------------------------------------------------


class Counter:
    """Callable recording its calls and returning an increasing integer."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, *args: Any, **kwargs: Any) -> int:
        value = self.calls
        self.calls += 1
        return value


@pytest.fixture
def counter() -> Counter:
    return Counter()


@pytest.fixture(autouse=True)
def _clean_cacheme_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CACHEME_* variables of the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("CACHEME_"):
            monkeypatch.delenv(name)
