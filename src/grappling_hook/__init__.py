"""钩子中间件库：为对象方法提供 pre/post 钩子与混合风格中间件编排。

grappling-hook: pre/post hooks for Python objects.

Register sync, callback-style (serial or parallel) and awaitable middleware
against named hooks, run them in order with a single latched outcome, and wrap
existing methods so their hooks run around them.
"""
from __future__ import annotations

from grappling_hook.config import HookOptions, Qualifiers, load_presets
from grappling_hook.errors import (
    ErrorContext,
    GrapplingHookError,
    InvalidQualifierError,
    MiddlewareError,
    MissingCallbackError,
    NotSupportedError,
    UndeclaredMethodError,
    UnqualifiedHookError,
)
from grappling_hook.hookable import GrapplingHook, attach, create
from grappling_hook.middleware import (
    Middleware,
    MiddlewareKind,
    awaitable,
    classify,
    is_thenable,
    parallel,
    serial,
    sync,
)
from grappling_hook.sequencer import get_hook_context

__version__ = "0.1.0"

__all__ = [
    # Hookable objects
    "GrapplingHook",
    "attach",
    "create",
    "get_hook_context",
    # Configuration
    "HookOptions",
    "Qualifiers",
    "load_presets",
    # Middleware
    "Middleware",
    "MiddlewareKind",
    "awaitable",
    "classify",
    "is_thenable",
    "parallel",
    "serial",
    "sync",
    # Errors
    "ErrorContext",
    "GrapplingHookError",
    "InvalidQualifierError",
    "MiddlewareError",
    "MissingCallbackError",
    "NotSupportedError",
    "UndeclaredMethodError",
    "UnqualifiedHookError",
    # Version
    "__version__",
]
