"""End-to-end tests of the documented usage examples."""

import asyncio
import itertools

import pytest

from grappling_hook import GrapplingHook, attach, create, get_hook_context


class TestExamples:
    """Usage examples from the README."""

    @pytest.mark.asyncio
    async def test_creating_a_hookable_object(self, make_outcome) -> None:
        """Test pre and post hooks around a declared method."""
        log = []
        instance = create()

        def save(done):
            log.append("save!")
            done()

        instance.add_hooks({"save": save})
        instance.pre("save", lambda: log.append("saving!")).post(
            "save", lambda: log.append("saved!")
        )

        outcome = make_outcome()
        instance.save(lambda err=None: (log.append("All done!!"), outcome(err)))

        assert await outcome.wait() == (None,)
        assert log == ["saving!", "save!", "saved!", "All done!!"]

    @pytest.mark.asyncio
    async def test_subclass(self, make_outcome) -> None:
        """Test hooking an existing method of a subclass."""
        log = []

        class Document(GrapplingHook):
            def save(self, done):
                log.append("save!")
                done()

        instance = Document()
        instance.add_hooks("save")
        instance.pre("save", lambda: log.append("saving!")).post(
            "save", lambda: log.append("saved!")
        )

        outcome = make_outcome()
        instance.save(outcome)

        await outcome.wait()
        assert log == ["saving!", "save!", "saved!"]

    def test_sync_methods(self) -> None:
        """Test hooks around a synchronous method."""
        log = []
        clock = itertools.count()

        @attach
        class Storage:
            def save_sync(self, filename):
                filename = f"{next(clock)}-{filename}"
                log.append(f"save {filename}")
                return filename

        instance = Storage()
        instance.add_sync_hooks("save_sync")
        instance.pre("save_sync", lambda filename: log.append("saving!")).post(
            "save_sync", lambda filename: log.append("saved!")
        )

        new_name = instance.save_sync("example.txt")
        log.append(f"new name: {new_name}")

        assert log == ["saving!", "save 0-example.txt", "saved!", "new name: 0-example.txt"]

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_mixed_middleware(self, make_outcome) -> None:
        """Test serial, sync, parallel and awaitable middleware together."""
        loop = asyncio.get_running_loop()
        log = []

        class Document(GrapplingHook):
            def save(self, callback):
                callback()

        instance = Document()
        instance.add_hooks("pre:save")

        def async_serial(next_):
            log.append("async serial: setup")

            def finish():
                log.append("async serial: done")
                next_()

            loop.call_later(0.05, finish)

        def sync_mw():
            log.append("sync: done")

        def async_parallel(next_, done):
            log.append("async parallel: setup")

            def finish():
                log.append("async parallel: done")
                done()

            loop.call_later(0.1, finish)
            next_()

        async def thenable():
            log.append("thenable: setup")
            await asyncio.sleep(0.015)
            log.append("thenable: done")

        instance.pre("save", async_serial, sync_mw, async_parallel, thenable)

        outcome = make_outcome()
        instance.save(outcome)

        await outcome.wait()
        assert log == [
            "async serial: setup",
            "async serial: done",
            "sync: done",
            "async parallel: setup",
            "thenable: setup",
            "thenable: done",
            "async parallel: done",
        ]

    @pytest.mark.asyncio
    async def test_contexts(self, make_outcome) -> None:
        """Test the default and a custom middleware context."""
        seen = []
        instance = create().allow_hooks("pre:save")
        instance.pre("save", lambda: seen.append(get_hook_context()))

        first, second = make_outcome(), make_outcome()
        instance.call_hook("pre:save", callback=first)
        instance.call_hook("pre:save", context="Different context!", callback=second)

        await first.wait()
        await second.wait()
        assert seen == [instance, "Different context!"]

    def test_sync_error_handling(self) -> None:
        """Test errors raised by sync hooks propagate."""
        instance = create().allow_hooks("pre:save")

        def fail():
            raise RuntimeError("Oh noes!")

        instance.pre("save", fail)

        with pytest.raises(RuntimeError, match="Oh noes!"):
            instance.call_sync_hook("pre:save")

    @pytest.mark.asyncio
    async def test_async_error_handling(self, make_outcome) -> None:
        """Test serial and parallel failures reach the callback."""
        serial_instance = create().allow_hooks("pre:save")
        serial_instance.pre("save", lambda next_: next_(RuntimeError("Oh noes!")))

        def parallel_failure(next_, done):
            next_()
            done(RuntimeError("Oh noes!"))

        parallel_instance = create().allow_hooks("pre:save")
        parallel_instance.pre("save", parallel_failure)

        for instance in (serial_instance, parallel_instance):
            outcome = make_outcome()
            instance.call_hook("pre:save", callback=outcome)
            (error,) = await outcome.wait()
            assert str(error) == "Oh noes!"

    @pytest.mark.asyncio
    async def test_awaitable_methods(self) -> None:
        """Test hooks around a coroutine method."""
        log = []

        class Repository(GrapplingHook):
            async def fetch(self, key):
                log.append(f"fetch {key}")
                return key * 2

        repo = Repository(strict=False)
        repo.add_thenable_hooks("fetch")
        repo.pre("fetch", lambda key: log.append(f"before {key}"))

        assert await repo.fetch(21) == 42
        assert log == ["before 21", "fetch 21"]
