"""错误基类：提供分层错误体系和结构化错误上下文。

Base error classes for grappling-hook.

Provides a layered error hierarchy:
- GrapplingHookError: Base class for all library errors
- UnqualifiedHookError: A qualified hook name was required
- InvalidQualifierError: Unknown qualifier in a hook name
- NotSupportedError: Hook not declared (strict mode) or unsupported middleware
- UndeclaredMethodError: Wrapping requested for a missing method
- MissingCallbackError: Async-wrapped method called without a callback
- MiddlewareError: Non-exception failure value reported by middleware
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorContext:
    """Structured error context for diagnostics.

    Provides actionable information for debugging and error handling.
    """

    hook: str | None = None
    """Hook name involved (e.g., 'pre:save')"""

    method: str | None = None
    """Method name involved when wrapping"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'registry', 'sequencer', 'wrapper')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hook:
            parts.append(f"at '{self.hook}'")
        if self.method:
            parts.append(f"on method '{self.method}'")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class GrapplingHookError(Exception):
    """Base class for all grappling-hook errors.

    All errors from this library inherit from this class, making it easy
    to catch all library errors with a single except clause.

    Attributes:
        message: Human-readable error message
        context: Optional structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> GrapplingHookError:
        """Add a hint to this error."""
        self.context.hint = hint
        self.args = (self._format_message(),)
        return self


class UnqualifiedHookError(GrapplingHookError, ValueError):
    """A hook name without qualifier was used where one is required.

    Raised when:
    - Registering or calling middleware for 'save' instead of 'pre:save'
    - Passing middleware to unhook() together with an unqualified name
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        hook: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="registry")
        if hook:
            ctx.hook = hook
        super().__init__(message, ctx)
        self.hook = hook


class InvalidQualifierError(GrapplingHookError, ValueError):
    """The qualifier of a hook name is not one of the configured names."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        qualifier: str | None = None,
        allowed: tuple[str, ...] = (),
    ) -> None:
        ctx = context or ErrorContext(source="registry")
        if qualifier is not None:
            ctx.details["qualifier"] = qualifier
        if allowed:
            ctx.details["allowed"] = list(allowed)
        super().__init__(message, ctx)
        self.qualifier = qualifier
        self.allowed = allowed


class NotSupportedError(GrapplingHookError):
    """A hook or middleware is not supported in the current setup.

    Raised when:
    - Middleware is registered for an undeclared hook in strict mode
    - Callback or awaitable middleware is run by a synchronous hook call
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        hook: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="registry")
        if hook:
            ctx.hook = hook
        super().__init__(message, ctx)
        self.hook = hook


class UndeclaredMethodError(GrapplingHookError, AttributeError):
    """Hooks were requested for a method that does not exist."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        method: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="wrapper")
        if method:
            ctx.method = method
        super().__init__(message, ctx)
        self.method = method


class MissingCallbackError(GrapplingHookError, TypeError):
    """An async-wrapped method was called without a completion callback."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        method: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="wrapper")
        if method:
            ctx.method = method
        super().__init__(message, ctx)
        self.method = method


class MiddlewareError(GrapplingHookError):
    """Failure reported by middleware with a value that is not an exception.

    Exceptions raised by (or passed on from) middleware travel unchanged.
    This class only wraps plain values such as ``next("went wrong")``.

    Attributes:
        value: The raw value passed to the continuation
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        value: Any = None,
        hook: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="sequencer")
        if hook:
            ctx.hook = hook
        ctx.details["value"] = repr(value)
        super().__init__(message, ctx)
        self.value = value

    @classmethod
    def coerce(cls, error: Any) -> BaseException:
        """Return ``error`` if it is an exception, otherwise wrap it.

        Args:
            error: Non-None failure value passed to a continuation

        Returns:
            An exception instance suitable for the completion channel
        """
        if isinstance(error, BaseException):
            return error
        return cls(f"Middleware failed with {error!r}", value=error)
