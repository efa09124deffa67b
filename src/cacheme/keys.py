"""Deterministic cache keys for function calls.

Keys are SHA-256 hashes of a canonical JSON document describing the call::

    [<module>.<qualname>, [<positional args>], {<keyword args>}]

so that equal arguments always produce the same key, independent of dict
insertion order, set iteration order, or keyword order.  Containers are
tagged with their type, which keeps ``f((1, 2))`` and ``f([1, 2])`` apart.
"""

from __future__ import annotations

import dataclasses
import enum
import hashlib
import json
from typing import Any, Callable, Mapping, Sequence

from pydantic import BaseModel

from cacheme.exceptions import KeyGenerationError


def _sort_token(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def _type_name(value: Any) -> str:
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def _canonical(value: Any) -> Any:
    """Convert *value* into a JSON-serialisable structure with a stable order."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, enum.Enum):
        return {"__enum__": _type_name(value), "value": _canonical(value.value)}
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, bytes):
        return {"__bytes__": value.hex()}
    if isinstance(value, list):
        return [_canonical(item) for item in value]
    if isinstance(value, tuple):
        return {"__tuple__": [_canonical(item) for item in value]}
    if isinstance(value, (set, frozenset)):
        items = [_canonical(item) for item in value]
        return {"__set__": sorted(items, key=_sort_token)}
    if isinstance(value, Mapping):
        pairs = [[_canonical(k), _canonical(v)] for k, v in value.items()]
        return {"__dict__": sorted(pairs, key=lambda pair: _sort_token(pair[0]))}
    if isinstance(value, BaseModel):
        return {"__model__": _type_name(value), "fields": _canonical(value.model_dump())}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return {"__dataclass__": _type_name(value), "fields": _canonical(fields)}
    if type(value).__repr__ is object.__repr__:
        raise KeyGenerationError(
            f"Cannot build a cache key from {_type_name(value)}: it has no stable "
            "representation (define __repr__ or pass a custom key function)"
        )
    return {"__repr__": _type_name(value), "value": repr(value)}


def function_identity(fn: Callable[..., Any]) -> str:
    """Return ``module.qualname`` of *fn*."""
    module = getattr(fn, "__module__", None) or "<unknown>"
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)
    return f"{module}.{name}"


def make_key(fn: Callable[..., Any], args: Sequence[Any], kwargs: Mapping[str, Any]) -> str:
    """Build the cache key for calling *fn* with *args* and *kwargs*.

    Args:
        fn: The memoized function.
        args: Positional arguments of the call.
        kwargs: Keyword arguments of the call.

    Returns:
        A 64-character hex digest.

    Raises:
        KeyGenerationError: If an argument has no stable representation.
    """
    document = [
        function_identity(fn),
        [_canonical(arg) for arg in args],
        {name: _canonical(value) for name, value in kwargs.items()},
    ]
    raw = json.dumps(document, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(raw.encode()).hexdigest()
