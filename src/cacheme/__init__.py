"""cacheme -- memoize Python functions with a configurable in-process cache.

Wrap a function with :func:`cache_me` and its results are cached by
argument fingerprint.  Storage and invalidation are delegated to a cache
strategy; the default, :func:`in_memory`, supports TTL expiration,
periodic and after-read background refresh with cooldown, conditional
caching via ``cache_when``, and a maximum entry count::

    from cacheme import cache_me, in_memory

    @cache_me(strategy=in_memory(ttl_in_ms=60_000, limit=1_000))
    async def exchange_rate(currency: str) -> float:
        ...

Modules:
    memoize: The ``cache_me`` decorator.
    cache: Strategy contract and the in-memory engine.
    models: Pydantic configuration models and call-contract types.
    config: Option resolution with ``CACHEME_*`` environment defaults.
    keys: Deterministic cache keys for function calls.
    hooks: Monitoring hooks for cache events.
    timers: Timer and background-task scheduling.
    exceptions: Exception hierarchy.
"""

from cacheme.cache import CacheStrategy, InMemoryCache, in_memory
from cacheme.exceptions import CacheMeError, ConfigError, KeyGenerationError
from cacheme.hooks import CacheHook
from cacheme.keys import make_key
from cacheme.memoize import cache_me
from cacheme.models import Cached, CacheConfig, ExpirationPolicy, PersistInput, RefreshPolicy

__version__ = "0.1.0"

__all__ = [
    "CacheConfig",
    "CacheHook",
    "CacheMeError",
    "CacheStrategy",
    "Cached",
    "ConfigError",
    "ExpirationPolicy",
    "InMemoryCache",
    "KeyGenerationError",
    "PersistInput",
    "RefreshPolicy",
    "cache_me",
    "in_memory",
    "make_key",
]
