"""Root pytest fixtures for grappling-hook tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from grappling_hook import GrapplingHook, create


class Outcome:
    """Completion callback recording every call it receives.

    Must be created inside a running event loop.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self._future: asyncio.Future[tuple[Any, ...]] = (
            asyncio.get_running_loop().create_future()
        )

    def __call__(self, error: Any = None, *results: Any) -> None:
        self.calls.append((error, *results))
        if not self._future.done():
            self._future.set_result((error, *results))

    @property
    def called(self) -> bool:
        return bool(self.calls)

    async def wait(self, timeout: float = 1.0) -> tuple[Any, ...]:
        """Wait for the first call and return its arguments."""
        return await asyncio.wait_for(asyncio.shield(self._future), timeout)


@pytest.fixture
def make_outcome() -> type[Outcome]:
    """Factory for completion callbacks usable in async tests."""
    return Outcome


@pytest.fixture
def instance() -> GrapplingHook:
    """Strict hookable object with ``pre:test`` and ``post:test`` allowed."""
    return create().allow_hooks("test")


@pytest.fixture
def lenient() -> GrapplingHook:
    """Hookable object accepting middleware for any hook."""
    return create(strict=False)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: tests relying on real timers")
