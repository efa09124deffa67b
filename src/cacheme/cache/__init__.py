"""Cache strategies for cacheme.

This package provides the :class:`CacheStrategy` contract used by
:func:`~cacheme.memoize.cache_me` and :class:`InMemoryCache`, the
process-local engine with TTL expiration, background refresh, conditional
caching and size-bounded eviction.  :func:`in_memory` is the usual way to
create one from flat options.
"""

from cacheme.cache.base import CacheStrategy
from cacheme.cache.memory import InMemoryCache, in_memory

__all__ = ["CacheStrategy", "InMemoryCache", "in_memory"]
