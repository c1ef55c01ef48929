"""
Middleware kinds and classification.

A middleware is any callable. Its kind decides how the sequencer runs it and
is read from its signature unless it was tagged explicitly:

- ``sync``: takes exactly the hook arguments
- ``serial``: takes the hook arguments and a ``next`` continuation
- ``parallel``: takes the hook arguments, ``next`` and ``done``
- ``awaitable``: takes exactly the hook arguments and returns an awaitable
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class MiddlewareKind(str, Enum):
    """Execution styles of middleware."""

    SYNC = "sync"
    SERIAL = "serial"
    PARALLEL = "parallel"
    AWAITABLE = "awaitable"

    @property
    def extra_params(self) -> int:
        """Number of trailing control parameters passed to this kind."""
        return _EXTRA_PARAMS[self]


_EXTRA_PARAMS = {
    MiddlewareKind.SYNC: 0,
    MiddlewareKind.SERIAL: 1,
    MiddlewareKind.PARALLEL: 2,
    MiddlewareKind.AWAITABLE: 0,
}

_KIND_BY_EXTRA = {
    1: MiddlewareKind.SERIAL,
    2: MiddlewareKind.PARALLEL,
}


@dataclass(frozen=True)
class Middleware:
    """A callable tagged with an explicit kind.

    Tagging skips signature inspection, which helps with callables whose
    signature cannot be read (builtins, ``*args`` wrappers).

    Attributes:
        func: Wrapped callable
        kind: Declared execution style
    """

    func: Callable[..., Any]
    kind: MiddlewareKind

    def __call__(self, *args: Any) -> Any:
        return self.func(*args)

    @property
    def name(self) -> str:
        """Name of the wrapped callable."""
        return getattr(self.func, "__name__", repr(self.func))


def sync(func: Callable[..., Any]) -> Middleware:
    """Tag ``func`` as synchronous middleware."""
    return Middleware(func, MiddlewareKind.SYNC)


def serial(func: Callable[..., Any]) -> Middleware:
    """Tag ``func`` as serial middleware taking ``(*args, next)``."""
    return Middleware(func, MiddlewareKind.SERIAL)


def parallel(func: Callable[..., Any]) -> Middleware:
    """Tag ``func`` as parallel middleware taking ``(*args, next, done)``."""
    return Middleware(func, MiddlewareKind.PARALLEL)


def awaitable(func: Callable[..., Any]) -> Middleware:
    """Tag ``func`` as middleware returning an awaitable."""
    return Middleware(func, MiddlewareKind.AWAITABLE)


def is_thenable(value: Any) -> bool:
    """Check whether ``value`` can be awaited.

    Coroutines, futures, tasks and objects implementing ``__await__`` all
    qualify.
    """
    return inspect.isawaitable(value)


def middleware_name(func: Callable[..., Any]) -> str:
    """Best-effort readable name of a middleware callable."""
    if isinstance(func, Middleware):
        return func.name
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", repr(func))


def _is_coroutine_callable(func: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def declared_arity(func: Callable[..., Any]) -> int | None:
    """Count the required positional parameters of ``func``.

    Bound methods do not count ``self``. Parameters with defaults are not
    counted. Returns None when the signature cannot be read or accepts
    ``*args``, i.e. when the arity is unknown.
    """
    if isinstance(func, Middleware):
        func = func.func
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None

    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in _POSITIONAL and param.default is inspect.Parameter.empty:
            count += 1
    return count


def classify(func: Callable[..., Any], arg_count: int) -> MiddlewareKind:
    """Determine how ``func`` must be invoked for ``arg_count`` arguments.

    Tagged middleware keeps its tag and coroutine functions are always
    awaitable. Otherwise the kind follows from the number of parameters
    beyond ``arg_count``: one is serial, two is parallel, anything else is
    sync. A sync call that returns an awaitable is handled as awaitable by
    the sequencer once the value exists.

    Args:
        func: Middleware callable
        arg_count: Number of hook arguments, excluding control parameters

    Returns:
        The middleware kind
    """
    if isinstance(func, Middleware):
        return func.kind
    if _is_coroutine_callable(func):
        return MiddlewareKind.AWAITABLE

    arity = declared_arity(func)
    if arity is None:
        return MiddlewareKind.SYNC
    return _KIND_BY_EXTRA.get(arity - arg_count, MiddlewareKind.SYNC)
