"""
Hook registry: allowed hooks and their middleware lists.

Hook names are qualified as ``<qualifier>:<action>``, e.g. ``pre:save``. An
unqualified action (``save``) stands for both qualifiers where that makes
sense.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from grappling_hook.config import HookOptions
from grappling_hook.errors import (
    InvalidQualifierError,
    NotSupportedError,
    UnqualifiedHookError,
)
from grappling_hook.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = get_logger("grappling_hook.registry")


class HookRegistry:
    """Bookkeeping of allowed hooks and registered middleware.

    Lists returned by :meth:`get` are copies, so registering or removing
    middleware never affects a hook run already in progress.

    Example:
        >>> registry = HookRegistry(HookOptions())
        >>> registry.allow("save")
        >>> registry.add("pre:save", [validate])
        >>> registry.get("pre:save")
        [<function validate>]
    """

    def __init__(self, options: HookOptions | None = None) -> None:
        """Initialize registry.

        Args:
            options: Hook options (strict mode, qualifier names)
        """
        self._options = options or HookOptions()
        self._allowed: set[str] = set()
        self._middleware: dict[str, list[Callable[..., Any]]] = {}
        self.originals: dict[str, Callable[..., Any]] = {}
        self.wrapped: dict[str, set[str]] = {}

    @property
    def options(self) -> HookOptions:
        """Options this registry was created with."""
        return self._options

    @property
    def strict(self) -> bool:
        """Whether only allowed hooks accept middleware."""
        return self._options.strict

    @property
    def qualifiers(self) -> tuple[str, str]:
        """Configured ``(pre, post)`` qualifier names."""
        return self._options.qualifiers.as_tuple()

    def parse(self, name: str) -> tuple[str | None, str]:
        """Split a hook name into qualifier and action.

        Args:
            name: Qualified (``pre:save``) or unqualified (``save``) name

        Returns:
            ``(qualifier, action)``; qualifier is None when unqualified

        Raises:
            TypeError: If ``name`` is not a string
            InvalidQualifierError: If the qualifier is not configured
        """
        if not isinstance(name, str):
            raise TypeError(f"Hook names must be strings, not {type(name).__name__}")

        qualifier, sep, action = name.partition(":")
        if not sep:
            return None, name
        if qualifier not in self.qualifiers:
            pre, post = self.qualifiers
            raise InvalidQualifierError(
                f"Only '{pre}' and '{post}' qualifiers are allowed, not '{qualifier}'",
                qualifier=qualifier,
                allowed=self.qualifiers,
            )
        if not action:
            raise InvalidQualifierError(
                f"Hook name '{name}' has a qualifier but no action",
                qualifier=qualifier,
                allowed=self.qualifiers,
            )
        return qualifier, action

    def qualify(self, name: str) -> str:
        """Validate that ``name`` is a qualified hook name and return it.

        Raises:
            UnqualifiedHookError: If ``name`` has no qualifier
        """
        qualifier, _ = self.parse(name)
        if qualifier is None:
            raise UnqualifiedHookError(
                f"Hook '{name}' must be qualified, e.g. '{self.qualifiers[0]}:{name}'",
                hook=name,
            )
        return name

    def expand(self, name: str) -> list[str]:
        """Return the qualified names ``name`` stands for."""
        qualifier, action = self.parse(name)
        if qualifier is None:
            return [f"{q}:{action}" for q in self.qualifiers]
        return [name]

    def allow(self, name: str) -> None:
        """Allow middleware for ``name`` (both qualifiers if unqualified)."""
        for qualified in self.expand(name):
            self._allowed.add(qualified)

    def is_allowed(self, name: str) -> bool:
        """Check whether middleware may be registered for qualified ``name``."""
        qualified = self.qualify(name)
        return not self.strict or qualified in self._allowed

    def add(self, name: str, middleware: Iterable[Callable[..., Any]]) -> None:
        """Append middleware to the list of qualified hook ``name``.

        Raises:
            UnqualifiedHookError: If ``name`` is not qualified
            NotSupportedError: If the hook is not allowed in strict mode
        """
        if not self.is_allowed(name):
            raise NotSupportedError(
                f"Hooks for '{name}' are not supported", hook=name
            ).with_hint(f"declare it first with allow_hooks('{name}')")
        items = list(middleware)
        self._middleware.setdefault(name, []).extend(items)
        logger.debug("Middleware registered", hook=name, count=len(items))

    def get(self, name: str) -> list[Callable[..., Any]]:
        """Return a snapshot of the middleware of qualified hook ``name``."""
        return list(self._middleware.get(self.qualify(name), []))

    def has(self, name: str) -> bool:
        """Check whether qualified hook ``name`` has middleware."""
        return bool(self._middleware.get(self.qualify(name)))

    def remove(
        self,
        name: str | None = None,
        middleware: Iterable[Callable[..., Any]] = (),
    ) -> None:
        """Remove middleware.

        - no name: everything
        - unqualified name: all middleware of both qualifiers
        - qualified name: all middleware of that hook, or only the given
          middleware (every registration of each)

        Allowed hooks stay allowed.

        Raises:
            UnqualifiedHookError: If middleware is given without a qualified name
        """
        targets = list(middleware)
        if name is None:
            if targets:
                raise UnqualifiedHookError(
                    "Removing specific middleware requires a qualified hook name"
                )
            self._middleware.clear()
            return

        qualifier, _ = self.parse(name)
        if qualifier is None:
            if targets:
                raise UnqualifiedHookError(
                    f"Removing specific middleware requires a qualified hook, not '{name}'",
                    hook=name,
                )
            for qualified in self.expand(name):
                self._middleware.pop(qualified, None)
            return

        if not targets:
            self._middleware.pop(name, None)
            return

        current = self._middleware.get(name)
        if current:
            self._middleware[name] = [fn for fn in current if fn not in targets]
        logger.debug("Middleware removed", hook=name, count=len(targets))

    def discard(self, name: str, func: Callable[..., Any]) -> None:
        """Remove every registration of ``func`` from ``name``, if any."""
        current = self._middleware.get(name)
        if current:
            self._middleware[name] = [fn for fn in current if fn is not func]

    @property
    def hook_counts(self) -> dict[str, int]:
        """Get count of middleware by hook."""
        return {name: len(items) for name, items in self._middleware.items() if items}
