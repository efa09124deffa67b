"""Abstract base class for cache strategies.

A strategy is the storage half of memoization.  The wrapper produced by
:func:`~cacheme.memoize.cache_me` computes a key for each call and talks to
its strategy through exactly two coroutines:

1. :meth:`CacheStrategy.retrieve` -- look the key up.
2. :meth:`CacheStrategy.persist` -- called only after a miss; computes the
   value through the supplied closure and decides whether to keep it.

Because ``persist`` owns the call to the underlying function, a strategy can
keep the closure around to recompute the value later (background refresh).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from cacheme.models import Cached, PersistInput

V = TypeVar("V")


class CacheStrategy(ABC, Generic[V]):
    """Storage contract used by the memoization wrapper."""

    @abstractmethod
    async def retrieve(self, key: str) -> Optional[Cached[V]]:
        """Look up *key*.

        A hit may have side effects inside the strategy (restarting a TTL,
        scheduling a refresh) but never adds or removes entries.

        Args:
            key: Cache key computed by the wrapper.

        Returns:
            :class:`~cacheme.models.Cached` wrapping the stored value, or
            ``None`` on a miss.
        """
        ...

    @abstractmethod
    async def persist(self, data: PersistInput[V]) -> V:
        """Compute a value after a miss and cache it when allowed.

        The freshly computed value is returned whether or not it was cached.
        Exceptions raised by ``data.fetch_fn`` propagate unchanged and leave
        the strategy untouched.

        Args:
            data: The key and the closure producing the value.

        Returns:
            The value produced by ``data.fetch_fn``.
        """
        ...
