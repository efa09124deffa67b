"""Fixed-capacity round-robin tracker of inserted keys."""

from __future__ import annotations

from typing import Optional


class EvictionRing:
    """Round-robin slots enforcing a maximum number of cached keys.

    Each insertion writes its key into the slot under the cursor and
    advances the cursor.  Whatever key previously occupied that slot is the
    eviction victim, which yields first-in-first-out eviction by insertion
    order: with ``limit=2``, inserting ``1, 2, 3, 4`` evicts ``1`` then ``2``.

    A key holds at most one slot.  Pushing a key that is already tracked
    frees its older slot, and :meth:`discard` frees the slot of a key that
    left the cache some other way, so a later overwrite of that slot never
    evicts a newer entry for the same key.

    Args:
        limit: Number of slots.  Must be positive.
    """

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self._slots: list[Optional[str]] = [None] * limit
        self._positions: dict[str, int] = {}
        self._cursor = 0

    @property
    def limit(self) -> int:
        return len(self._slots)

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def push(self, key: str) -> Optional[str]:
        """Record an insertion of *key*.

        Returns:
            The key that must be evicted, or ``None`` if the slot was free.
        """
        self.discard(key)
        victim = self._slots[self._cursor]
        if victim is not None:
            del self._positions[victim]
        self._slots[self._cursor] = key
        self._positions[key] = self._cursor
        self._cursor = (self._cursor + 1) % len(self._slots)
        return victim

    def discard(self, key: str) -> None:
        """Free the slot held by *key*, if any."""
        position = self._positions.pop(key, None)
        if position is not None:
            self._slots[position] = None

    def keys(self) -> list[str]:
        """Return tracked keys from oldest to newest insertion."""
        ordered = self._slots[self._cursor:] + self._slots[: self._cursor]
        return [key for key in ordered if key is not None]

    def clear(self) -> None:
        self._slots = [None] * len(self._slots)
        self._positions.clear()
        self._cursor = 0
