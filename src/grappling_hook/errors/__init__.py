"""错误体系：提供钩子注册、调用与方法包装的结构化错误类型。

Error hierarchy for grappling-hook.

Programming errors (unqualified names, undeclared hooks or methods) are raised
at the call site. Middleware failures travel through the completion channel.
"""

from grappling_hook.errors.base import (
    ErrorContext,
    GrapplingHookError,
    InvalidQualifierError,
    MiddlewareError,
    MissingCallbackError,
    NotSupportedError,
    UndeclaredMethodError,
    UnqualifiedHookError,
)

__all__ = [
    # Base errors
    "ErrorContext",
    "GrapplingHookError",
    # Registry
    "InvalidQualifierError",
    "NotSupportedError",
    "UnqualifiedHookError",
    # Wrapping
    "MissingCallbackError",
    "UndeclaredMethodError",
    # Runtime
    "MiddlewareError",
]
