"""In-process cache engine with TTL, background refresh and size bounds.

:class:`InMemoryCache` keeps one :class:`~cacheme.cache.entry.Entry` per key
in a plain dict and implements the
:class:`~cacheme.cache.base.CacheStrategy` contract on top of it.  What
happens around an entry is driven by its
:class:`~cacheme.models.CacheConfig`:

* **Expiration** -- with a TTL, a one-shot timer removes the entry; with
  ``reset_ttl_on_read`` every hit restarts that timer.
* **Periodic refresh** -- a repeating timer recomputes the value through
  the entry's fetch closure for as long as the entry lives.
* **Refresh after read** -- every hit schedules a background recomputation
  unless the entry was updated less than ``cooldown_in_ms`` ago or a
  recomputation for it is still running.  The hit itself returns the value
  cached at that moment.
* **Conditional caching** -- ``cache_when`` decides whether a computed value
  is stored (on persist) or replaces the current one (on refresh).
* **Size limit** -- an :class:`~cacheme.cache.ring.EvictionRing` evicts in
  insertion order once ``limit`` entries were inserted.

Every removal path (expiration, eviction, :meth:`InMemoryCache.invalidate`,
:meth:`InMemoryCache.clear`) goes through :meth:`InMemoryCache._remove`,
which cancels the entry's timers and in-flight refreshes.  A refresh that
still completes afterwards only writes if its entry is still the one mapped
to the key, so a removed key is never brought back by stale work.

Failures of background refreshes have no caller to propagate to.  They are
logged and reported to the configured hooks through ``on_error``; the entry
keeps its previous value.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional, TypeVar

from cacheme.cache.base import CacheStrategy
from cacheme.cache.entry import Entry
from cacheme.cache.ring import EvictionRing
from cacheme.config import resolve_config
from cacheme.exceptions import ConfigError
from cacheme.hooks import HookRunner
from cacheme.models import CacheConfig, Cached, FetchFn, PersistInput
from cacheme.timers import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

V = TypeVar("V")


async def _evaluate(fetch_fn: FetchFn) -> Any:
    """Call *fetch_fn*, awaiting the result when the closure is asynchronous."""
    result = fetch_fn()
    if inspect.isawaitable(result):
        result = await result
    return result


class InMemoryCache(CacheStrategy[V]):
    """Process-local cache strategy.

    All operations must run on one event loop.  No locking is done: the
    only suspension points are the awaits on the fetch closure and on
    ``cache_when``.  Concurrent misses on the same key are not merged; each
    calls the underlying function and the last one to finish wins.

    Args:
        config: Cache configuration.  Defaults to caching forever.
        scheduler: Source of time, timers and background tasks.  Defaults
            to an :class:`~cacheme.timers.AsyncioScheduler`.

    Example::

        cache = InMemoryCache(CacheConfig.from_options(ttl_in_ms=1_000, limit=100))
        value = await cache.persist(PersistInput(key="k", fetch_fn=load))
        hit = await cache.retrieve("k")
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        *,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._config = config if config is not None else CacheConfig()
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._entries: dict[str, Entry[V]] = {}
        self._ring: Optional[EvictionRing] = (
            EvictionRing(self._config.limit) if self._config.limit else None
        )
        self._hooks = HookRunner(self._config.hooks)

    @property
    def config(self) -> CacheConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Membership checks bypass the read path: no TTL reset, no refresh.
        return key in self._entries

    # ------------------------------------------------------------------ #
    # Strategy contract
    # ------------------------------------------------------------------ #

    async def retrieve(self, key: str) -> Optional[Cached[V]]:
        logger.debug("Retrieve cached value for key %s", key)
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Value for key %s not found in cache", key)
            self._hooks.fire("miss", key)
            return None

        logger.debug("Value for key %s found in cache", key)
        self._hooks.fire("hit", key)
        return Cached(self._read(key, entry))

    async def persist(self, data: PersistInput[V]) -> V:
        logger.debug("Persist value for key %s", data.key)
        value = await _evaluate(data.fetch_fn)

        if not await self._accepts(data.key, value):
            return value

        self._insert(data.key, value, data.fetch_fn)
        return value

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    async def refresh(self, key: str, cooldown_ms: float = 0) -> bool:
        """Recompute the value cached under *key*.

        Does nothing if the key is not cached or its entry was updated less
        than *cooldown_ms* ago.  Otherwise the fetch closure is called and,
        if ``cache_when`` accepts the result, the entry's value and
        ``modified`` timestamp are replaced.  Timers keep running unchanged.

        Exceptions from the fetch closure or ``cache_when`` propagate to the
        caller and leave the entry unchanged.

        Args:
            key: The cache key to refresh.
            cooldown_ms: Minimum age of the current value in milliseconds.

        Returns:
            ``True`` if the cached value was replaced.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("No entry for key %s to refresh", key)
            return False
        return await self._refresh_entry(key, entry, cooldown_ms)

    async def _refresh_entry(self, key: str, entry: Entry[V], cooldown_ms: float) -> bool:
        if entry.in_cooldown(cooldown_ms, self._scheduler.now()):
            logger.debug("Entry for key %s is in cooldown, skipping refresh", key)
            return False

        logger.debug("Refresh value for key %s", key)
        value = await _evaluate(entry.fetch_fn)

        if not await self._accepts(key, value):
            return False

        if self._entries.get(key) is not entry:
            logger.debug("Entry for key %s was removed during refresh, dropping value", key)
            return False

        entry.value = value
        entry.modified = self._scheduler.now()
        self._hooks.fire("refresh", key)
        return True

    def _schedule_refresh(self, key: str, entry: Entry[V], cooldown_ms: float) -> None:
        if entry.in_cooldown(cooldown_ms, self._scheduler.now()):
            logger.debug("Entry for key %s is in cooldown, not scheduling refresh", key)
            return
        if entry.refreshing:
            logger.debug("Refresh for key %s already running, not scheduling another", key)
            return
        entry.track(self._scheduler.spawn(self._background_refresh(key, entry, cooldown_ms)))

    async def _background_refresh(self, key: str, entry: Entry[V], cooldown_ms: float) -> None:
        try:
            await self._refresh_entry(key, entry, cooldown_ms)
        except Exception as exc:
            logger.warning("Background refresh for key %s failed: %s", key, exc, exc_info=True)
            self._hooks.fire("error", key, exc)

    # ------------------------------------------------------------------ #
    # Entry lifecycle
    # ------------------------------------------------------------------ #

    async def _accepts(self, key: str, value: Any) -> bool:
        cache_when = self._config.cache_when
        if cache_when is None:
            return True

        logger.debug("Evaluate cache_when for key %s", key)
        decision = cache_when(value)
        if inspect.isawaitable(decision):
            decision = await decision
        if not decision:
            logger.debug("cache_when rejected value for key %s", key)
            return False
        return True

    def _read(self, key: str, entry: Entry[V]) -> V:
        if self._config.refresh_after_read:
            self._schedule_refresh(key, entry, self._config.cooldown_in_ms)
        if self._config.reset_ttl_on_read and entry.expiration is not None:
            entry.expiration.restart()
        return entry.value

    def _insert(self, key: str, value: V, fetch_fn: FetchFn) -> None:
        logger.debug("Insert value for key %s", key)
        previous = self._entries.pop(key, None)
        if previous is not None:
            # A concurrent miss on the same key finished first.
            previous.dispose()

        entry: Entry[V] = Entry(value=value, fetch_fn=fetch_fn, modified=self._scheduler.now())
        interval = self._config.refresh_interval_in_ms
        if interval is not None:
            entry.refresher = self._scheduler.call_every(
                interval, lambda: self._schedule_refresh(key, entry, 0)
            )
        ttl = self._config.ttl_in_ms
        if ttl is not None:
            entry.expiration = self._scheduler.call_later(ttl, lambda: self._expire(key, entry))

        self._entries[key] = entry
        self._hooks.fire("store", key)

        if self._ring is not None:
            victim = self._ring.push(key)
            if victim is not None:
                logger.debug("Limit of %d reached, evicting key %s", self._ring.limit, victim)
                if self._remove(victim) is not None:
                    self._hooks.fire("evict", victim)

    def _expire(self, key: str, entry: Entry[V]) -> None:
        if self._entries.get(key) is not entry:
            return
        logger.debug("TTL elapsed for key %s", key)
        self._remove(key)
        self._hooks.fire("expire", key)

    def _remove(self, key: str) -> Optional[Entry[V]]:
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        entry.dispose()
        if self._ring is not None:
            self._ring.discard(key)
        return entry

    # ------------------------------------------------------------------ #
    # Management
    # ------------------------------------------------------------------ #

    def invalidate(self, key: str) -> bool:
        """Remove *key* from the cache.

        Returns:
            ``True`` if an entry was removed.
        """
        logger.debug("Invalidate key %s", key)
        return self._remove(key) is not None

    def clear(self) -> None:
        """Remove all entries, cancelling their timers and refreshes."""
        for key in list(self._entries):
            self._remove(key)
        if self._ring is not None:
            self._ring.clear()

    def close(self) -> None:
        """Release all scheduled work.  The cache stays usable afterwards."""
        self.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size``, ``limit``, ``ttl_in_ms``,
            ``refresh_interval_in_ms`` and ``refresh_after_read``.  With a
            limit it also holds ``eviction_order`` (tracked keys, next
            victim first once the ring is full) and ``eviction_cursor``.
        """
        stats: dict[str, Any] = {
            "size": len(self._entries),
            "limit": self._config.limit,
            "ttl_in_ms": self._config.ttl_in_ms,
            "refresh_interval_in_ms": self._config.refresh_interval_in_ms,
            "refresh_after_read": self._config.refresh_after_read,
        }
        if self._ring is not None:
            stats["eviction_order"] = self._ring.keys()
            stats["eviction_cursor"] = self._ring.cursor
        return stats


def in_memory(
    config: Optional[CacheConfig] = None,
    *,
    scheduler: Optional[Scheduler] = None,
    **options: Any,
) -> InMemoryCache:
    """Create an :class:`InMemoryCache`.

    Either pass a ready :class:`~cacheme.models.CacheConfig` or flat
    options, which are merged with ``CACHEME_*`` environment defaults by
    :func:`~cacheme.config.resolve_config`.

    Example::

        strategy = in_memory(ttl_in_ms=60_000, refresh_after_read=True, cooldown_in_ms=5_000)

    Raises:
        ConfigError: If both *config* and options are given, or the
            options are invalid.
    """
    if config is not None and options:
        raise ConfigError("Pass either a CacheConfig or individual options, not both")
    if config is None:
        config = resolve_config(**options)
    return InMemoryCache(config, scheduler=scheduler)
