"""
Hookable objects.

``GrapplingHook`` gives an object named pre/post hooks, middleware
registration, hook calls in callback, synchronous and awaitable flavours, and
wrapping of existing methods so their hooks run around them.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Iterable, Mapping
from typing import Any, Callable, ClassVar, TypeVar

from grappling_hook.config import HookOptions, resolve_options
from grappling_hook.errors import MissingCallbackError, UndeclaredMethodError
from grappling_hook.middleware import is_thenable, sync
from grappling_hook.registry import HookRegistry
from grappling_hook.sequencer import (
    ensure_async,
    iterate_middleware,
    iterate_sync_middleware,
)
from grappling_hook.telemetry.logger import get_logger, log_context

logger = get_logger("grappling_hook.hookable")

_Hookable = TypeVar("_Hookable", bound="GrapplingHook")
_T = TypeVar("_T", bound=type)

Callback = Callable[..., Any]


def _flatten_names(hooks: Iterable[Any]) -> list[str]:
    names: list[str] = []
    for item in hooks:
        if isinstance(item, str):
            names.append(item)
        elif isinstance(item, Iterable) and not isinstance(item, (bytes, Mapping)):
            names.extend(_flatten_names(item))
        else:
            raise TypeError(
                f"Hook names must be strings or iterables of strings, not {type(item).__name__}"
            )
    return names


def _flatten_middleware(middleware: Iterable[Any]) -> list[Callable[..., Any]]:
    items: list[Callable[..., Any]] = []
    for item in middleware:
        if callable(item):
            items.append(item)
        elif isinstance(item, (list, tuple)):
            items.extend(_flatten_middleware(item))
        else:
            raise TypeError(f"Middleware must be callable, not {type(item).__name__}")
    return items


class GrapplingHook:
    """Object with pre/post hooks.

    Use it directly (see :func:`create`), as a base class, or through
    :func:`attach`. Registration methods return the instance so calls chain.
    Besides the methods below, the configured qualifier names are available
    as shortcuts: ``instance.pre("save", fn)`` is ``instance.hook("pre:save", fn)``.

    Example:
        >>> instance = create()
        >>> instance.add_hooks({"save": lambda done: done()})
        >>> instance.pre("save", lambda: print("saving!"))
        >>> instance.save(lambda err=None: print("saved"))
    """

    grappling_options: ClassVar[HookOptions | None] = None

    def __init__(
        self, options: HookOptions | dict[str, Any] | None = None, **overrides: Any
    ) -> None:
        """Initialize hook state.

        Args:
            options: Options; defaults to the class's ``grappling_options``
            **overrides: Option values layered on top of ``options``
        """
        base = options if options is not None else type(self).grappling_options
        vars(self)["_grappling_registry"] = HookRegistry(
            resolve_options(base, **overrides)
        )

    @property
    def _grappling(self) -> HookRegistry:
        """Per-instance registry, created on first use."""
        state = vars(self)
        registry = state.get("_grappling_registry")
        if registry is None:
            registry = HookRegistry(resolve_options(type(self).grappling_options))
            state["_grappling_registry"] = registry
        return registry

    def __getattr__(self, name: str) -> Any:
        if not name.startswith("_") and name in self._grappling.qualifiers:
            return functools.partial(self._qualified_hook, name)
        raise AttributeError(
            f"{type(self).__name__!r} object has no attribute {name!r}"
        )

    @property
    def hook_options(self) -> HookOptions:
        """Options of this instance."""
        return self._grappling.options

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def allow_hooks(self: _Hookable, *hooks: str | Iterable[str]) -> _Hookable:
        """Declare hooks that accept middleware.

        Args:
            *hooks: Qualified names (``pre:save``), actions (``save``, which
                allows both qualifiers) or iterables of those

        Returns:
            Self for chaining
        """
        for name in _flatten_names(hooks):
            self._grappling.allow(name)
        return self

    def hookable(self, name: str) -> bool:
        """Check whether middleware can be registered for qualified ``name``."""
        return self._grappling.is_allowed(name)

    def hook(self, name: str, *middleware: Any) -> Any:
        """Register middleware for a qualified hook.

        Without middleware, returns a future resolved with the argument tuple
        of the next call of the hook.

        Args:
            name: Qualified hook name
            *middleware: Callables or lists of callables

        Returns:
            Self for chaining, or an ``asyncio.Future`` if no middleware given
        """
        qualified = self._grappling.qualify(name)
        items = _flatten_middleware(middleware)
        if not items:
            return self._once(qualified)
        self._grappling.add(qualified, items)
        return self

    def _qualified_hook(self, qualifier: str, action: str, *middleware: Any) -> Any:
        return self.hook(f"{qualifier}:{action}", *middleware)

    def _once(self, name: str) -> asyncio.Future[tuple[Any, ...]]:
        future: asyncio.Future[tuple[Any, ...]] = (
            asyncio.get_running_loop().create_future()
        )

        def resolve(*args: Any) -> None:
            self._grappling.discard(name, resolver)
            if not future.done():
                future.set_result(args)

        resolver = sync(resolve)
        self._grappling.add(name, [resolver])
        return future

    def unhook(self: _Hookable, name: str | None = None, *middleware: Any) -> _Hookable:
        """Remove middleware.

        ``unhook()`` removes everything, ``unhook("save")`` both qualifiers of
        an action, ``unhook("pre:save")`` one hook and
        ``unhook("pre:save", fn)`` only ``fn``. Allowed hooks stay allowed.

        Returns:
            Self for chaining
        """
        self._grappling.remove(name, _flatten_middleware(middleware))
        return self

    def get_middleware(self, name: str) -> list[Callable[..., Any]]:
        """Return a copy of the middleware registered for qualified ``name``."""
        return self._grappling.get(name)

    def has_middleware(self, name: str) -> bool:
        """Check whether qualified ``name`` has middleware."""
        return self._grappling.has(name)

    # ------------------------------------------------------------------
    # Calling
    # ------------------------------------------------------------------

    def call_hook(
        self: _Hookable,
        name: str,
        *args: Any,
        context: Any = None,
        callback: Callback | None = None,
    ) -> _Hookable:
        """Run the middleware of a qualified hook.

        ``callback(error)`` is always called after this method returned.
        Without a callback, a failure is raised instead.

        Args:
            name: Qualified hook name
            *args: Arguments passed to every middleware
            context: Value of ``get_hook_context()`` in middleware (self by default)
            callback: Completion callback, receives the error or None

        Returns:
            Self for chaining
        """
        qualified = self._grappling.qualify(name)
        middleware = self._grappling.get(qualified)
        ctx = self if context is None else context

        if callback is None:
            iterate_middleware(ctx, middleware, args, hook=qualified)
        else:
            ensure_async(
                lambda done: iterate_middleware(
                    ctx, middleware, args, done, hook=qualified
                ),
                callback,
            )
        return self

    def call_sync_hook(
        self: _Hookable, name: str, *args: Any, context: Any = None
    ) -> _Hookable:
        """Run the synchronous middleware of a qualified hook.

        Middleware return values are discarded; exceptions propagate.

        Raises:
            NotSupportedError: If a middleware is not synchronous
        """
        qualified = self._grappling.qualify(name)
        ctx = self if context is None else context
        iterate_sync_middleware(
            ctx, self._grappling.get(qualified), args, hook=qualified
        )
        return self

    def call_thenable_hook(
        self, name: str, *args: Any, context: Any = None
    ) -> asyncio.Future[None]:
        """Run the middleware of a qualified hook and return a future.

        The future resolves with None or fails with the middleware error.
        Must be called with a running event loop.
        """
        qualified = self._grappling.qualify(name)
        middleware = self._grappling.get(qualified)
        ctx = self if context is None else context
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def settle(error: BaseException | None = None) -> None:
            if future.done():
                return
            if error is None:
                future.set_result(None)
            elif isinstance(error, asyncio.CancelledError):
                future.cancel()
            else:
                future.set_exception(error)

        ensure_async(
            lambda done: iterate_middleware(ctx, middleware, args, done, hook=qualified),
            settle,
        )
        return future

    # ------------------------------------------------------------------
    # Method wrapping
    # ------------------------------------------------------------------

    def add_hooks(self: _Hookable, *hooks: str | Mapping[str, Callable[..., Any]]) -> _Hookable:
        """Wrap callback-style methods with their hooks.

        A wrapped method must be called with a completion callback as its
        last argument. It runs the pre hook, then the original with the same
        arguments plus a ``done(error=None, *results)`` callback, then the
        post hook, then the callback with ``(error, *results)``.

        Args:
            *hooks: ``"save"`` (pre and post), ``"pre:save"`` (one phase), or
                a mapping of such names to functions that become the method

        Returns:
            Self for chaining

        Raises:
            UndeclaredMethodError: If a named method does not exist
            TypeError: For arguments other than strings and mappings
        """
        return self._add_wrappers(hooks, self._wrap_async)

    def add_sync_hooks(
        self: _Hookable, *hooks: str | Mapping[str, Callable[..., Any]]
    ) -> _Hookable:
        """Wrap synchronous methods with their hooks.

        The wrapped method runs the pre hook, the original, the post hook and
        returns the original's return value. Hook middleware must be sync.
        """
        return self._add_wrappers(hooks, self._wrap_sync)

    def add_thenable_hooks(
        self: _Hookable, *hooks: str | Mapping[str, Callable[..., Any]]
    ) -> _Hookable:
        """Wrap methods returning awaitables (or plain values) with their hooks.

        The wrapped method returns an ``asyncio.Task`` resolving to the
        original's result once the post hook finished.
        """
        return self._add_wrappers(hooks, self._wrap_thenable)

    def _add_wrappers(
        self: _Hookable,
        hooks: tuple[Any, ...],
        wrap: Callable[[str, Callable[..., Any], str | None, str | None], Callable[..., Any]],
    ) -> _Hookable:
        registry = self._grappling
        requested: dict[str, tuple[set[str], Callable[..., Any] | None]] = {}

        for item in hooks:
            if isinstance(item, str):
                entries: Iterable[tuple[str, Any]] = [(item, None)]
            elif isinstance(item, Mapping):
                entries = item.items()
            else:
                raise TypeError(
                    f"Hooks must be given as strings or mappings, not {type(item).__name__}"
                )
            for name, func in entries:
                qualifier, method = registry.parse(name)
                if func is not None and not callable(func):
                    raise TypeError(f"Method for '{name}' must be callable")
                qualifiers, original = requested.get(method, (set(), None))
                qualifiers.update([qualifier] if qualifier else registry.qualifiers)
                requested[method] = (qualifiers, func or original)

        for method, (qualifiers, func) in requested.items():
            original = func or registry.originals.get(method)
            if original is None:
                original = getattr(self, method, None)
                if not callable(original):
                    raise UndeclaredMethodError(
                        f"Cannot add hooks to undeclared method '{method}'",
                        method=method,
                    )
            qualifiers |= registry.wrapped.get(method, set())
            registry.originals[method] = original
            registry.wrapped[method] = qualifiers

            pre, post = registry.qualifiers
            pre_name = f"{pre}:{method}" if pre in qualifiers else None
            post_name = f"{post}:{method}" if post in qualifiers else None
            for hook_name in (pre_name, post_name):
                if hook_name:
                    registry.allow(hook_name)

            setattr(self, method, wrap(method, original, pre_name, post_name))
            logger.debug(
                "Method wrapped", method=method, qualifiers=sorted(qualifiers)
            )
        return self

    def _wrap_async(
        self,
        method: str,
        original: Callable[..., Any],
        pre_name: str | None,
        post_name: str | None,
    ) -> Callable[..., None]:
        @functools.wraps(original)
        def hooked(*args: Any) -> None:
            if not args or not callable(args[-1]):
                raise MissingCallbackError(
                    f"Hooked method '{method}' must be called with a callback "
                    "as its last argument",
                    method=method,
                )
            *params, callback = args

            def start(complete: Callback) -> None:
                finished = False
                called = False

                def finish(error: BaseException | None, *results: Any) -> None:
                    nonlocal finished
                    if finished:
                        return
                    finished = True
                    complete(error, *results)

                def after_original(error: Any = None, *results: Any) -> None:
                    nonlocal called
                    if called or finished:
                        logger.debug("Ignoring repeated done()", method=method)
                        return
                    called = True
                    if error is not None:
                        finish(error)
                    elif post_name is None:
                        finish(None, *results)
                    else:

                        def after_post(err: BaseException | None = None) -> None:
                            if err is not None:
                                finish(err)
                            else:
                                finish(None, *results)

                        iterate_middleware(
                            self,
                            self._grappling.get(post_name),
                            params,
                            after_post,
                            hook=post_name,
                        )

                def after_pre(error: BaseException | None = None) -> None:
                    if error is not None:
                        finish(error)
                        return
                    try:
                        original(*params, after_original)
                    except Exception as exc:
                        if called or finished:
                            raise
                        finish(exc)

                if pre_name is None:
                    after_pre()
                else:
                    iterate_middleware(
                        self,
                        self._grappling.get(pre_name),
                        params,
                        after_pre,
                        hook=pre_name,
                    )

            with log_context(method=method):
                ensure_async(start, callback)

        return hooked

    def _wrap_sync(
        self,
        method: str,
        original: Callable[..., Any],
        pre_name: str | None,
        post_name: str | None,
    ) -> Callable[..., Any]:
        @functools.wraps(original)
        def hooked(*args: Any) -> Any:
            with log_context(method=method):
                if pre_name:
                    self.call_sync_hook(pre_name, *args)
                result = original(*args)
                if post_name:
                    self.call_sync_hook(post_name, *args)
            return result

        return hooked

    def _wrap_thenable(
        self,
        method: str,
        original: Callable[..., Any],
        pre_name: str | None,
        post_name: str | None,
    ) -> Callable[..., asyncio.Task[Any]]:
        @functools.wraps(original)
        def hooked(*args: Any) -> asyncio.Task[Any]:
            loop = asyncio.get_running_loop()

            async def run() -> Any:
                if pre_name:
                    await self.call_thenable_hook(pre_name, *args)
                result = original(*args)
                if is_thenable(result):
                    result = await result
                if post_name:
                    await self.call_thenable_hook(post_name, *args)
                return result

            with log_context(method=method):
                return loop.create_task(run(), name=f"hooked:{method}")

        return hooked


def create(
    options: HookOptions | dict[str, Any] | None = None, **overrides: Any
) -> GrapplingHook:
    """Create a standalone hookable object.

    Args:
        options: Options or a preset (see ``load_presets``)
        **overrides: Option values layered on top of ``options``

    Returns:
        New GrapplingHook
    """
    return GrapplingHook(options, **overrides)


def attach(
    cls: _T | None = None,
    options: HookOptions | dict[str, Any] | None = None,
    **overrides: Any,
) -> Any:
    """Give a class hook support.

    Returns ``cls`` itself when it already derives from GrapplingHook,
    otherwise a subclass of ``cls`` and GrapplingHook with the same name.
    Instances get their own hook state on first use. Usable as a decorator,
    with or without arguments.

    Example:
        >>> @attach(strict=False)
        ... class Document:
        ...     def save(self, done):
        ...         done()
    """
    if cls is None:
        return lambda target: attach(target, options, **overrides)
    if not isinstance(cls, type):
        raise TypeError(f"attach() expects a class, not {type(cls).__name__}")

    resolved = resolve_options(options, **overrides)
    if issubclass(cls, GrapplingHook):
        cls.grappling_options = resolved
        return cls

    return type(cls)(
        cls.__name__,
        (cls, GrapplingHook),
        {
            "__module__": cls.__module__,
            "__qualname__": cls.__qualname__,
            "__doc__": cls.__doc__,
            "grappling_options": resolved,
        },
    )
