"""A single cached record and the scheduled work it owns."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from cacheme.models import FetchFn
from cacheme.timers import TimerHandle

V = TypeVar("V")


@dataclass(eq=False)
class Entry(Generic[V]):
    """One key's cached value with its timers and metadata.

    Entries are owned by exactly one :class:`~cacheme.cache.memory.InMemoryCache`
    and compared by identity, so a timer or task bound to an entry can tell
    whether the key it serves still maps to it.

    Attributes:
        value: The cached value, returned by identity on every hit.
        fetch_fn: Closure recomputing the value with the original arguments.
        modified: Milliseconds since the epoch of the last value update.
        expiration: One-shot TTL timer, present iff a TTL is configured.
        refresher: Repeating refresh timer, present iff periodic refresh is
            configured.
        tasks: Background refreshes currently running for this entry.
    """

    value: V
    fetch_fn: FetchFn
    modified: float
    expiration: Optional[TimerHandle] = None
    refresher: Optional[TimerHandle] = None
    tasks: set[asyncio.Task] = field(default_factory=set)

    def in_cooldown(self, cooldown_ms: float, now: float) -> bool:
        """Return True while the last update is younger than *cooldown_ms*."""
        return self.modified + cooldown_ms > now

    @property
    def refreshing(self) -> bool:
        """True while a background refresh for this entry has not finished."""
        return any(not task.done() for task in self.tasks)

    def track(self, task: asyncio.Task) -> None:
        """Keep a reference to *task* until it finishes."""
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    def dispose(self) -> None:
        """Cancel every timer and background task owned by this entry."""
        if self.expiration is not None:
            self.expiration.cancel()
        if self.refresher is not None:
            self.refresher.cancel()
        for task in list(self.tasks):
            task.cancel()
