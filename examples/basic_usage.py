#!/usr/bin/env python3
"""
Basic usage example.

This example demonstrates:
- Creating a hookable object and declaring hookable methods
- Registering pre and post middleware
- Hooking synchronous and coroutine methods
- Passing arguments and a context to hooks

Usage:
    python examples/basic_usage.py
"""

import asyncio

from grappling_hook import GrapplingHook, attach, create, get_hook_context


async def creating_an_instance() -> None:
    """Declare a method on a standalone instance and hook it."""
    print("=== Creating a hookable object ===")

    instance = create()

    def save(done):
        print("save!")
        done()

    instance.add_hooks({"save": save})
    instance.pre("save", lambda: print("saving!")).post("save", lambda: print("saved!"))

    finished = asyncio.get_running_loop().create_future()

    def on_saved(err=None):
        print("All done!!")
        finished.set_result(err)

    instance.save(on_saved)
    await finished
    print()


async def using_a_class() -> None:
    """Hook an existing method of a class."""
    print("=== Using a class ===")

    @attach
    class Document:
        def __init__(self, title):
            self.title = title

        def save(self, done):
            print(f"save {self.title}!")
            done(None, self.title.lower())

    doc = Document("README")
    doc.add_hooks("save")
    doc.pre("save", lambda: print(f"saving {get_hook_context().title}..."))

    finished = asyncio.get_running_loop().create_future()
    doc.save(lambda err=None, slug=None: finished.set_result(slug))
    print(f"slug: {await finished}")
    print()


def sync_methods() -> None:
    """Hook a synchronous method; its return value is preserved."""
    print("=== Synchronous methods ===")

    class Storage(GrapplingHook):
        def save_sync(self, filename):
            print("save", filename)
            return f"0-{filename}"

    storage = Storage()
    storage.add_sync_hooks("save_sync")
    storage.pre("save_sync", lambda filename: print("saving!"))
    storage.post("save_sync", lambda filename: print("saved!"))

    print("new name:", storage.save_sync("example.txt"))
    print()


async def coroutine_methods() -> None:
    """Hook a coroutine method; the wrapped call returns a task."""
    print("=== Coroutine methods ===")

    class Repository(GrapplingHook):
        async def fetch(self, key):
            await asyncio.sleep(0.01)
            return {"key": key}

    repo = Repository()
    repo.add_thenable_hooks("fetch")

    async def authorize(key):
        print(f"authorizing {key}...")

    repo.pre("fetch", authorize)
    print("fetched:", await repo.fetch("user:1"))
    print()


async def parameters_and_contexts() -> None:
    """Pass arguments and a custom context to a hook call."""
    print("=== Parameters and contexts ===")

    instance = create().allow_hooks("pre:save")
    instance.pre("save", lambda foo, bar: print("saving!", foo, bar, get_hook_context()))

    await instance.call_thenable_hook("pre:save", "foo", {"bar": "bar"})
    await instance.call_thenable_hook("pre:save", "foo", "bar", context="Different context!")
    print()


async def main() -> None:
    """Run all examples."""
    await creating_an_instance()
    await using_a_class()
    sync_methods()
    await coroutine_methods()
    await parameters_and_contexts()


if __name__ == "__main__":
    asyncio.run(main())
