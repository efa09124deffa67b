"""Configuration resolution with environment-variable defaults.

:func:`resolve_config` merges explicitly passed options with process-wide
defaults read from ``CACHEME_*`` environment variables and produces a
validated :class:`~cacheme.models.CacheConfig`.  This lets an operator tune
TTLs or size limits of a deployed service without code changes while code
that passes an option explicitly keeps full control.

Recognised variables:

=================================  ===========================
Variable                           Option
=================================  ===========================
``CACHEME_TTL_IN_MS``              ``ttl_in_ms``
``CACHEME_RESET_TTL_ON_READ``      ``reset_ttl_on_read``
``CACHEME_REFRESH_INTERVAL_IN_MS`` ``refresh_interval_in_ms``
``CACHEME_REFRESH_AFTER_READ``     ``refresh_after_read``
``CACHEME_COOLDOWN_IN_MS``         ``cooldown_in_ms``
``CACHEME_LIMIT``                  ``limit``
=================================  ===========================

``cache_when`` and ``hooks`` are callables and can only be passed in code.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Optional

from cacheme.exceptions import ConfigError
from cacheme.models import CacheConfig

ENV_PREFIX = "CACHEME_"

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off", ""}


def _env_int(name: str) -> Optional[int]:
    """Read an integer env var; ``None`` when unset."""
    raw = os.environ.get(name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str) -> Optional[bool]:
    """Read a boolean env var; ``None`` when unset."""
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


_ENV_OPTIONS: dict[str, Callable[[str], Any]] = {
    "ttl_in_ms": _env_int,
    "reset_ttl_on_read": _env_bool,
    "refresh_interval_in_ms": _env_int,
    "refresh_after_read": _env_bool,
    "cooldown_in_ms": _env_int,
    "limit": _env_int,
}


def load_env_options() -> dict[str, Any]:
    """Return the options set through ``CACHEME_*`` environment variables.

    Only variables that are present appear in the result.

    Raises:
        ConfigError: If a variable is set but cannot be parsed.
    """
    options: dict[str, Any] = {}
    for option, reader in _ENV_OPTIONS.items():
        value = reader(ENV_PREFIX + option.upper())
        if value is not None:
            options[option] = value
    return options


def resolve_config(**options: Any) -> CacheConfig:
    """Resolve the effective cache configuration.

    Precedence (high to low):
        1. Options passed to this function (``None`` counts as not passed)
        2. Environment variables (``CACHEME_TTL_IN_MS``, ...)
        3. Defaults (cache forever, no refresh, no size limit)

    Args:
        **options: Flat options as accepted by
            :meth:`~cacheme.models.CacheConfig.from_options`.

    Returns:
        A validated :class:`~cacheme.models.CacheConfig`.

    Raises:
        ConfigError: On unknown option names, unparseable environment
            variables, or invalid values.  ``CACHEME_COOLDOWN_IN_MS`` alone
            is ignored for caches without a refresh trigger; an explicit
            ``cooldown_in_ms`` without one is still rejected.
    """
    unknown = set(options) - set(_ENV_OPTIONS) - {"cache_when", "hooks"}
    if unknown:
        raise ConfigError(f"Unknown cache option(s): {', '.join(sorted(unknown))}")

    explicit = {name: value for name, value in options.items() if value is not None}
    merged = load_env_options()
    merged.update(explicit)
    if "cooldown_in_ms" not in explicit and not _has_refresh_trigger(merged):
        # An environment cooldown is a default for caches that refresh.
        merged.pop("cooldown_in_ms", None)
    return CacheConfig.from_options(**merged)


def _has_refresh_trigger(options: dict[str, Any]) -> bool:
    return (
        options.get("refresh_interval_in_ms") is not None
        or bool(options.get("refresh_after_read"))
    )
