"""
Telemetry module for grappling-hook.

Provides structured logging tagged with the hook and run being executed.
"""

from grappling_hook.telemetry.logger import (
    HookLogger,
    JsonFormatter,
    LogContext,
    LogLevel,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    log_context,
    push_log_context,
    reset_log_context,
    set_log_context,
)

__all__ = [
    "HookLogger",
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "log_context",
    "push_log_context",
    "reset_log_context",
    "set_log_context",
]
