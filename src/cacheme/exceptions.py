"""Exception hierarchy for cacheme.

All exceptions raised by the library itself inherit from
:class:`CacheMeError`.  Errors raised by a memoized function or by a
``cache_when`` predicate are never wrapped: they propagate to the caller
unchanged so that callers keep handling their own exception types.

Subclass hierarchy::

    CacheMeError
    +-- ConfigError
    +-- KeyGenerationError
"""


class CacheMeError(Exception):
    """Base exception for all cacheme errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(CacheMeError):
    """Raised for invalid cache configuration (bad values, conflicting options, unparseable env vars)."""


class KeyGenerationError(CacheMeError):
    """Raised when call arguments cannot be turned into a stable cache key."""
