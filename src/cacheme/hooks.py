"""Monitoring hooks for cache lifecycle events.

This module provides two components:

* :class:`CacheHook` -- base class whose methods are called on cache
  events.  Every method is a no-op by default so a hook only overrides what
  it observes.
* :class:`HookRunner` -- dispatches an event to all registered hooks in
  registration order.

Hooks are the observability channel for work that has no caller to report
to, most importantly failures of background refreshes::

    class ErrorCounter(CacheHook):
        def __init__(self):
            self.errors = []

        def on_error(self, key, error):
            self.errors.append((key, error))

    cache = in_memory(refresh_after_read=True, hooks=[ErrorCounter()])
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class CacheHook:
    """Base class for cache event observers.

    Hook methods run synchronously inside the cache operation that fired
    them, so they should be quick.  An exception raised by a hook is logged
    and otherwise ignored; it never fails the cache operation.
    """

    def on_hit(self, key: str) -> None:
        """Called when :meth:`retrieve` finds a live entry."""

    def on_miss(self, key: str) -> None:
        """Called when :meth:`retrieve` finds no entry."""

    def on_store(self, key: str) -> None:
        """Called after :meth:`persist` inserted a new entry."""

    def on_refresh(self, key: str) -> None:
        """Called after a refresh replaced an entry's value."""

    def on_evict(self, key: str) -> None:
        """Called when an entry is removed to honour the size limit."""

    def on_expire(self, key: str) -> None:
        """Called when an entry is removed because its TTL elapsed."""

    def on_error(self, key: str, error: BaseException) -> None:
        """Called when a background refresh of *key* failed.

        Args:
            key: The cache key whose refresh failed.
            error: The exception raised by the fetch function or by the
                ``cache_when`` predicate.
        """


class HookRunner:
    """Executes hook methods across all registered hooks in order.

    The runner holds a snapshot of the hook list taken at creation time.
    """

    def __init__(self, hooks: list[CacheHook]) -> None:
        self._hooks = list(hooks)

    def __len__(self) -> int:
        return len(self._hooks)

    def fire(self, event: str, key: str, *args: object) -> None:
        """Call ``on_<event>(key, *args)`` on every hook.

        Args:
            event: Event name without the ``on_`` prefix, e.g. ``"hit"``.
            key: The cache key the event concerns.
            *args: Extra event arguments (the exception for ``"error"``).
        """
        for hook in self._hooks:
            try:
                getattr(hook, f"on_{event}")(key, *args)
            except Exception:
                logger.warning(
                    "Hook %s failed on '%s' for key %s",
                    type(hook).__name__,
                    event,
                    key,
                    exc_info=True,
                )
