"""Configuration models and call-contract value types for cacheme.

Configuration is expressed with Pydantic models so invalid combinations are
rejected once, at construction, rather than discovered while the cache is
running:

* :class:`ExpirationPolicy` -- TTL and whether reads restart it.
* :class:`RefreshPolicy` -- periodic and/or after-read background refresh,
  with an optional cooldown.
* :class:`CacheConfig` -- the full engine configuration grouping the two
  policies with ``limit``, ``cache_when`` and monitoring hooks.

The flat option names accepted by :func:`cacheme.in_memory` (``ttl_in_ms``,
``refresh_after_read``, ...) are translated into these groups by
:meth:`CacheConfig.from_options`.

The call contract between the memoization wrapper and a cache strategy uses
two plain dataclasses, :class:`Cached` and :class:`PersistInput`.  They are
dataclasses rather than Pydantic models because the wrapped values must be
handed back by identity, never copied or coerced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from cacheme.exceptions import ConfigError
from cacheme.hooks import CacheHook

V = TypeVar("V")

FetchFn = Callable[[], Union[V, Awaitable[V]]]
"""Zero-argument closure producing a value, synchronously or as an awaitable."""

CacheWhen = Callable[[Any], Union[bool, Awaitable[bool]]]
"""Predicate deciding whether a freshly computed value may be cached."""


# --- Call contract ---


@dataclass(frozen=True)
class Cached(Generic[V]):
    """A cache hit.  Wrapping the value distinguishes a cached ``None`` from a miss."""

    value: V


@dataclass(frozen=True)
class PersistInput(Generic[V]):
    """Arguments of :meth:`~cacheme.cache.base.CacheStrategy.persist`.

    Attributes:
        key: The cache key computed by the memoization wrapper.
        fetch_fn: Closure re-invoking the original function with the
            original arguments.  Reused by background refreshes.
    """

    key: str
    fetch_fn: FetchFn


# --- Configuration ---


class ExpirationPolicy(BaseModel):
    """Time-to-live settings for cached entries."""

    model_config = ConfigDict(frozen=True)

    ttl_in_ms: int = Field(gt=0, description="Entry is removed this many ms after insertion")
    reset_ttl_on_read: bool = Field(
        default=False, description="Every read restarts the TTL countdown"
    )


class RefreshPolicy(BaseModel):
    """Background refresh settings.

    At least one trigger must be enabled.  ``cooldown_in_ms`` throttles
    after-read refreshes: a read only schedules a refresh once the entry's
    last update is at least that old.  Periodic ticks always refresh.
    """

    model_config = ConfigDict(frozen=True)

    interval_in_ms: Optional[int] = Field(
        default=None, gt=0, description="Refresh every N ms while the entry is cached"
    )
    after_read: bool = Field(
        default=False, description="Every read schedules a background refresh"
    )
    cooldown_in_ms: int = Field(
        default=0, ge=0, description="Minimum age of an entry before it is refreshed after a read"
    )

    @model_validator(mode="after")
    def _require_trigger(self) -> "RefreshPolicy":
        if self.interval_in_ms is None and not self.after_read:
            raise ValueError("refresh policy needs interval_in_ms or after_read")
        return self


class CacheConfig(BaseModel):
    """Full configuration of an :class:`~cacheme.cache.memory.InMemoryCache`.

    Every field is optional; the default configuration caches forever with
    no size bound.

    Example::

        CacheConfig(
            expiration=ExpirationPolicy(ttl_in_ms=60_000, reset_ttl_on_read=True),
            refresh=RefreshPolicy(after_read=True, cooldown_in_ms=5_000),
            limit=1_000,
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    expiration: Optional[ExpirationPolicy] = None
    refresh: Optional[RefreshPolicy] = None
    limit: Optional[int] = Field(default=None, gt=0, description="Maximum number of entries")
    cache_when: Optional[CacheWhen] = Field(
        default=None, description="Predicate gating whether a computed value is stored"
    )
    hooks: list[CacheHook] = Field(default_factory=list)

    @classmethod
    def from_options(
        cls,
        *,
        ttl_in_ms: Optional[int] = None,
        reset_ttl_on_read: bool = False,
        refresh_interval_in_ms: Optional[int] = None,
        refresh_after_read: bool = False,
        cooldown_in_ms: Optional[int] = None,
        limit: Optional[int] = None,
        cache_when: Optional[CacheWhen] = None,
        hooks: Optional[list[CacheHook]] = None,
    ) -> "CacheConfig":
        """Build a grouped configuration from flat option names.

        ``reset_ttl_on_read`` without ``ttl_in_ms`` is accepted and has no
        effect.  ``cooldown_in_ms`` without any refresh trigger is rejected.

        Raises:
            ConfigError: If any value is out of range or the options conflict.
        """
        has_trigger = refresh_interval_in_ms is not None or refresh_after_read
        if cooldown_in_ms is not None and not has_trigger:
            raise ConfigError(
                "cooldown_in_ms requires refresh_after_read or refresh_interval_in_ms"
            )

        try:
            expiration = None
            if ttl_in_ms is not None:
                expiration = ExpirationPolicy(
                    ttl_in_ms=ttl_in_ms, reset_ttl_on_read=reset_ttl_on_read
                )
            refresh = None
            if has_trigger:
                refresh = RefreshPolicy(
                    interval_in_ms=refresh_interval_in_ms,
                    after_read=refresh_after_read,
                    cooldown_in_ms=cooldown_in_ms or 0,
                )
            return cls(
                expiration=expiration,
                refresh=refresh,
                limit=limit,
                cache_when=cache_when,
                hooks=list(hooks or []),
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid cache configuration: {exc}") from exc

    @property
    def ttl_in_ms(self) -> Optional[int]:
        return self.expiration.ttl_in_ms if self.expiration else None

    @property
    def reset_ttl_on_read(self) -> bool:
        return bool(self.expiration and self.expiration.reset_ttl_on_read)

    @property
    def refresh_interval_in_ms(self) -> Optional[int]:
        return self.refresh.interval_in_ms if self.refresh else None

    @property
    def refresh_after_read(self) -> bool:
        return bool(self.refresh and self.refresh.after_read)

    @property
    def cooldown_in_ms(self) -> int:
        return self.refresh.cooldown_in_ms if self.refresh else 0
