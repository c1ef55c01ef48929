"""
Middleware sequencing engine.

Runs an ordered list of middleware of mixed kinds against one argument tuple
and reports a single outcome:

- sync middleware runs inline; raising aborts the rest of the list
- serial middleware holds the walk until its ``next`` continuation fires
- parallel middleware releases the walk with ``next`` while the run also
  waits for its ``done``
- awaitable middleware holds the walk until the returned awaitable settles

The first failure is latched. Later failures and completions from parallel
middleware still in flight are dropped, and the completion callback is
called exactly once.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Callable

from grappling_hook.errors import ErrorContext, MiddlewareError, NotSupportedError
from grappling_hook.middleware import (
    MiddlewareKind,
    classify,
    is_thenable,
    middleware_name,
)
from grappling_hook.telemetry.logger import (
    LogLevel,
    get_logger,
    log_context,
    push_log_context,
    reset_log_context,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

Callback = Callable[..., Any]

logger = get_logger("grappling_hook.sequencer")

# Execution context ("this") of the middleware currently being invoked
_hook_context: ContextVar[Any] = ContextVar("hook_context", default=None)

# Nested walks started by synchronous continuations before they are flattened
_MAX_INLINE_DEPTH = 64


def get_hook_context() -> Any:
    """Get the context object of the middleware currently running.

    Defaults to the hookable instance that owns the hook, or the ``context``
    passed to the hook call.
    """
    return _hook_context.get()


@contextmanager
def _bound(context: Any, hook: str | None, run_id: str | None) -> Iterator[None]:
    """Expose ``context`` and log fields while a middleware is invoked."""
    token = _hook_context.set(context)
    try:
        with log_context(hook=hook, run_id=run_id):
            yield
    finally:
        _hook_context.reset(token)


def _rethrow(error: BaseException | None = None) -> None:
    """Default completion: surface failures nobody listens for."""
    if error is not None:
        raise error


def ensure_async(start: Callable[[Callback], Any], callback: Callback) -> None:
    """Guarantee ``callback`` never runs inside the caller's frame.

    ``start`` receives a completion function. If that function is called
    before ``start`` returns, the call to ``callback`` is scheduled on the
    running event loop; afterwards it is forwarded directly.

    Args:
        start: Function starting the work, given the completion function
        callback: Function to call with the completion arguments

    Raises:
        RuntimeError: If completion is synchronous and no loop is running
    """
    starting = True

    def complete(*args: Any) -> None:
        if starting:
            asyncio.get_running_loop().call_soon(callback, *args)
        else:
            callback(*args)

    try:
        start(complete)
    finally:
        starting = False


class _Run:
    """State of a single sequencer run.

    The waiting set holds one token per parallel dispatch, so a ``done`` that
    arrives before its own ``next`` is accounted for correctly.
    """

    def __init__(
        self,
        context: Any,
        middleware: Iterable[Callable[..., Any]],
        args: Sequence[Any],
        callback: Callback,
        hook: str | None = None,
    ) -> None:
        self._context = context
        self._queue: deque[Callable[..., Any]] = deque(middleware)
        self._args = tuple(args)
        self._callback = callback
        self._hook = hook
        self._run_id = uuid.uuid4().hex[:12]
        self._waiting: set[object] = set()
        self._exhausted = False
        self._finished = False
        self._depth = 0
        self._resume = False

    def start(self) -> None:
        logger.debug(
            "Hook run started",
            hook=self._hook,
            run_id=self._run_id,
            middleware=len(self._queue),
        )
        self._advance()

    def _finish(self, error: BaseException | None) -> None:
        if self._finished:
            if error is not None:
                logger.debug(
                    "Dropping error reported after run finished",
                    hook=self._hook,
                    run_id=self._run_id,
                    error=repr(error),
                )
            return
        self._finished = True
        if error is None:
            logger.debug("Hook run succeeded", hook=self._hook, run_id=self._run_id)
        else:
            logger.debug(
                "Hook run failed",
                hook=self._hook,
                run_id=self._run_id,
                error=repr(error),
            )
        self._callback(error)

    def _advance(self) -> None:
        """Walk the serial axis until a middleware suspends it.

        A continuation fired synchronously runs the next middleware inline.
        Beyond ``_MAX_INLINE_DEPTH`` nested walks it is handed to the innermost
        walk instead, which picks it up as soon as its middleware returns.
        """
        if self._depth >= _MAX_INLINE_DEPTH:
            self._resume = True
            return

        self._depth += 1
        try:
            while not self._finished:
                if not self._queue:
                    self._exhausted = True
                    if not self._waiting:
                        self._finish(None)
                    return

                func = self._queue.popleft()
                kind = classify(func, len(self._args))
                if logger.is_enabled_for(LogLevel.DEBUG):
                    logger.debug(
                        "Dispatching middleware",
                        hook=self._hook,
                        run_id=self._run_id,
                        middleware=middleware_name(func),
                        kind=kind.value,
                    )

                controls: tuple[Callback, ...] = ()
                if kind is MiddlewareKind.SERIAL:
                    controls = (self._continuation(),)
                elif kind is MiddlewareKind.PARALLEL:
                    token = object()
                    self._waiting.add(token)
                    controls = (self._continuation(), self._waiter(token))

                future: asyncio.Future[Any] | None = None
                self._resume = False
                try:
                    context_token = _hook_context.set(self._context)
                    log_token = push_log_context(hook=self._hook, run_id=self._run_id)
                    try:
                        result = func(*self._args, *controls)
                        if not controls and is_thenable(result):
                            future = asyncio.ensure_future(result)
                    finally:
                        reset_log_context(log_token)
                        _hook_context.reset(context_token)
                except Exception as exc:
                    if self._finished:
                        raise
                    self._finish(exc)
                    return

                if future is not None:
                    future.add_done_callback(self._settler(self._continuation()))
                    return
                if controls:
                    if not self._resume:
                        return
                    self._resume = False
        finally:
            self._depth -= 1

    def _continuation(self) -> Callback:
        """Create the ``next`` function of one dispatch."""
        called = False

        def next_(error: Any = None) -> None:
            nonlocal called
            if called:
                logger.debug(
                    "Ignoring repeated next()", hook=self._hook, run_id=self._run_id
                )
                return
            called = True
            if error is not None:
                self._finish(MiddlewareError.coerce(error))
                return
            self._advance()

        return next_

    def _waiter(self, token: object) -> Callback:
        """Create the ``done`` function of one parallel dispatch."""
        called = False

        def done(error: Any = None) -> None:
            nonlocal called
            if called:
                logger.debug(
                    "Ignoring repeated done()", hook=self._hook, run_id=self._run_id
                )
                return
            called = True
            self._waiting.discard(token)
            if error is not None:
                self._finish(MiddlewareError.coerce(error))
            elif self._exhausted and not self._waiting:
                self._finish(None)

        return done

    @staticmethod
    def _settler(next_: Callback) -> Callable[[asyncio.Future[Any]], None]:
        def settle(future: asyncio.Future[Any]) -> None:
            if future.cancelled():
                next_(asyncio.CancelledError())
            else:
                next_(future.exception())

        return settle


def iterate_middleware(
    context: Any,
    middleware: Iterable[Callable[..., Any]],
    args: Sequence[Any],
    callback: Callback | None = None,
    *,
    hook: str | None = None,
) -> None:
    """Run ``middleware`` in order against ``args``.

    ``callback(error)`` is called exactly once, with None on success. Without
    a callback a failure is raised, synchronously when the failing middleware
    ran synchronously. The callback is not deferred here; wrap the call in
    :func:`ensure_async` for that.

    Args:
        context: Object returned by ``get_hook_context()`` inside middleware
        middleware: Ordered middleware; iterated once, up front
        args: Arguments passed to every middleware
        callback: Completion callback
        hook: Hook name used in log records
    """
    _Run(context, middleware, args, callback or _rethrow, hook).start()


def iterate_sync_middleware(
    context: Any,
    middleware: Iterable[Callable[..., Any]],
    args: Sequence[Any],
    *,
    hook: str | None = None,
) -> None:
    """Run synchronous ``middleware`` in order against ``args``.

    Return values are discarded and exceptions propagate, stopping the rest
    of the list.

    Raises:
        NotSupportedError: If a middleware needs a continuation or returns
            an awaitable
    """
    args = tuple(args)
    for func in list(middleware):
        kind = classify(func, len(args))
        if kind is not MiddlewareKind.SYNC:
            raise NotSupportedError(
                f"{kind.value} middleware {middleware_name(func)!r} cannot run "
                "in a synchronous hook call",
                ErrorContext(source="sequencer", hook=hook, details={"kind": kind.value}),
                hook=hook,
            ).with_hint("use call_hook() or call_thenable_hook() instead")
        with _bound(context, hook, None):
            result = func(*args)
        if is_thenable(result):
            close = getattr(result, "close", None)
            if callable(close):
                close()
            raise NotSupportedError(
                f"Middleware {middleware_name(func)!r} returned an awaitable "
                "in a synchronous hook call",
                ErrorContext(source="sequencer", hook=hook),
                hook=hook,
            ).with_hint("use call_thenable_hook() instead")
