"""The ``cache_me`` memoization decorator.

Wraps a synchronous or asynchronous function into a coroutine function that
consults a :class:`~cacheme.cache.base.CacheStrategy` before calling it::

    @cache_me(strategy=in_memory(ttl_in_ms=30_000))
    async def load_user(user_id: int) -> dict:
        ...

    user = await load_user(42)   # computed
    user = await load_user(42)   # served from cache

Each call computes a key from the function identity and its arguments.  A
hit returns the cached value; a miss hands the strategy a closure over the
original arguments, which the strategy calls and may keep for background
refreshes.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from typing import Any, Callable, Iterable, Optional

from cacheme.cache.base import CacheStrategy
from cacheme.cache.memory import in_memory
from cacheme.keys import make_key
from cacheme.models import PersistInput

logger = logging.getLogger(__name__)

KeyFunction = Callable[[Callable[..., Any], tuple, dict], str]


def _log_warm_up_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Cache warm-up call failed: %s", exc, exc_info=exc)


def _signature_of(fn: Callable[..., Any]) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None


def _key_arguments(
    signature: Optional[inspect.Signature], args: tuple, kwargs: dict
) -> tuple[tuple, dict]:
    """Bind a call to *signature* so that ``f(1)`` and ``f(x=1)`` share a key.

    Calls that do not bind are keyed as given; calling the function
    reports the error.
    """
    if signature is None:
        return args, kwargs
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return args, kwargs
    return bound.args, bound.kwargs


def _memoize(
    fn: Callable[..., Any],
    strategy: Optional[CacheStrategy],
    eager: Iterable[Iterable[Any]],
    key: KeyFunction,
) -> Callable[..., Any]:
    cache_strategy = strategy if strategy is not None else in_memory()
    pending = [tuple(args) for args in eager]
    warm_ups: set[asyncio.Task] = set()
    signature = _signature_of(fn)

    def warm_up(loop: asyncio.AbstractEventLoop) -> None:
        while pending:
            task = loop.create_task(wrapper(*pending.pop(0)))
            warm_ups.add(task)
            task.add_done_callback(warm_ups.discard)
            task.add_done_callback(_log_warm_up_failure)

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        if pending:
            warm_up(asyncio.get_running_loop())

        cache_key = key(fn, *_key_arguments(signature, args, kwargs))
        cached = await cache_strategy.retrieve(cache_key)
        if cached is not None:
            return cached.value

        fetch_fn = functools.partial(fn, *args, **kwargs)
        return await cache_strategy.persist(PersistInput(key=cache_key, fetch_fn=fetch_fn))

    wrapper.strategy = cache_strategy  # type: ignore[attr-defined]

    if pending:
        try:
            warm_up(asyncio.get_running_loop())
        except RuntimeError:
            logger.debug("No running event loop, deferring warm-up of %s to its first call", fn)

    return wrapper


def cache_me(
    fn: Optional[Callable[..., Any]] = None,
    strategy: Optional[CacheStrategy] = None,
    *,
    eager: Iterable[Iterable[Any]] = (),
    key: KeyFunction = make_key,
) -> Any:
    """Memoize *fn* through a cache strategy.

    Usable bare (``@cache_me``), with arguments
    (``@cache_me(strategy=in_memory(limit=100))``) or as a plain call
    (``cache_me(fn, strategy)``).

    Args:
        fn: The function to memoize, sync or async.
        strategy: Where results are stored.  Defaults to a fresh
            :func:`~cacheme.cache.memory.in_memory` cache per function.
        eager: Argument tuples to compute in the background ahead of use.
            Scheduled immediately when an event loop is running, otherwise
            on the first call of the wrapper.
        key: Function mapping ``(fn, args, kwargs)`` to a cache key.  It
            receives the arguments bound to the signature of *fn*, so
            positional and keyword spellings of a call look the same.

    Returns:
        A coroutine function with the same signature metadata as *fn* and
        a ``strategy`` attribute referencing the strategy in use.
    """
    if fn is None:
        return lambda func: _memoize(func, strategy, eager, key)
    return _memoize(fn, strategy, eager, key)
