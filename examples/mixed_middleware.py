#!/usr/bin/env python3
"""
Mixed middleware example.

This example demonstrates how the middleware kinds interleave:
- serial middleware holds the hook until it calls ``next``
- sync middleware runs inline
- parallel middleware releases the hook with ``next`` and finishes with ``done``
- coroutine middleware holds the hook until it returns

It also shows error handling, presets and explicit kind tags.

Usage:
    python examples/mixed_middleware.py
"""

import asyncio
import tempfile
from pathlib import Path

from grappling_hook import (
    GrapplingHook,
    NotSupportedError,
    create,
    load_presets,
    parallel,
)
from grappling_hook.telemetry import HookLogger, LogLevel


class Document(GrapplingHook):
    def save(self, callback):
        callback()


async def mixed_kinds() -> None:
    """Register one middleware of every kind."""
    print("=== Mixed middleware ===")
    loop = asyncio.get_running_loop()

    doc = Document()
    doc.add_hooks("pre:save")

    def async_serial(next_):
        print("async serial: setup")
        loop.call_later(0.1, lambda: (print("async serial: done"), next_()))

    def sync_mw():
        print("sync: done")

    def async_parallel(next_, done):
        print("async parallel: setup")
        loop.call_later(0.2, lambda: (print("async parallel: done"), done()))
        next_()

    async def thenable():
        print("thenable: setup")
        await asyncio.sleep(0.03)
        print("thenable: done")

    doc.pre("save", async_serial, sync_mw, async_parallel, thenable)

    finished = loop.create_future()
    doc.save(lambda err=None: finished.set_result(err))
    print(f"finished with error: {await finished}")
    print()


async def error_handling() -> None:
    """Failures travel to the callback, or raise in synchronous calls."""
    print("=== Error handling ===")

    instance = create().allow_hooks("save")
    instance.pre("save", lambda next_: next_(RuntimeError("Oh noes!")))

    try:
        await instance.call_thenable_hook("pre:save")
    except RuntimeError as e:
        print(f"An error occurred: {e}")

    try:
        instance.call_sync_hook("pre:save")
    except NotSupportedError as e:
        print(f"Not supported: {e}")
    print()


async def tagged_middleware() -> None:
    """Tags skip signature inspection, e.g. for ``*args`` callables."""
    print("=== Tagged middleware ===")

    def generic(*args):
        *values, next_, done = args
        print(f"parallel with values {values}")
        next_()
        done()

    instance = create(strict=False)
    instance.pre("save", parallel(generic))
    await instance.call_thenable_hook("pre:save", 1, 2)
    print()


def presets() -> None:
    """Load option presets from a YAML file."""
    print("=== Presets ===")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "hooks.yaml"
        path.write_text(
            "models:\n  strict: false\n  qualifiers: {pre: before, post: after}\n",
            encoding="utf-8",
        )
        options = load_presets(path)["models"]

    instance = create(options)
    instance.before("save", lambda: print("before save"))
    instance.call_sync_hook("before:save")
    print(f"options: {instance.hook_options}")
    print()


async def main() -> None:
    """Run all examples."""
    HookLogger.configure(level=LogLevel.WARNING, format="text")

    await mixed_kinds()
    await error_handling()
    await tagged_middleware()
    presets()


if __name__ == "__main__":
    asyncio.run(main())
