#!/usr/bin/env python3
"""
Sequencer performance benchmarks.

Measures the overhead of running hooks with each middleware kind.
"""

import asyncio
import time
from typing import Any

from grappling_hook import create


def sync_mw(value):
    pass


def serial_mw(value, next_):
    next_()


def parallel_mw(value, next_, done):
    next_()
    done()


async def awaitable_mw(value):
    return None


async def benchmark_call_hook(
    name: str, middleware: list[Any], iterations: int = 2000
) -> dict[str, Any]:
    """Benchmark call_hook with a completion callback."""
    instance = create().allow_hooks("pre:bench")
    instance.pre("bench", middleware)
    loop = asyncio.get_running_loop()

    start = time.perf_counter()
    for i in range(iterations):
        future = loop.create_future()
        instance.call_hook("pre:bench", i, callback=lambda err=None, f=future: f.set_result(err))
        await future
    elapsed = time.perf_counter() - start

    return {
        "name": name,
        "iterations": iterations,
        "middleware": len(middleware),
        "elapsed_seconds": elapsed,
        "calls_per_second": iterations / elapsed if elapsed > 0 else 0,
        "latency_us": (elapsed / iterations) * 1_000_000,
    }


def benchmark_call_sync_hook(iterations: int = 20000) -> dict[str, Any]:
    """Benchmark call_sync_hook with sync middleware."""
    middleware = [sync_mw] * 10
    instance = create().allow_hooks("pre:bench")
    instance.pre("bench", middleware)

    start = time.perf_counter()
    for i in range(iterations):
        instance.call_sync_hook("pre:bench", i)
    elapsed = time.perf_counter() - start

    return {
        "name": "call_sync_hook (sync x10)",
        "iterations": iterations,
        "middleware": len(middleware),
        "elapsed_seconds": elapsed,
        "calls_per_second": iterations / elapsed if elapsed > 0 else 0,
        "latency_us": (elapsed / iterations) * 1_000_000,
    }


async def run_benchmarks() -> None:
    """Run all benchmarks and print results."""
    print("=" * 60)
    print("Sequencer Benchmarks")
    print("=" * 60)
    print()

    results = [
        benchmark_call_sync_hook(),
        await benchmark_call_hook("call_hook (sync x10)", [sync_mw] * 10),
        await benchmark_call_hook("call_hook (serial x10)", [serial_mw] * 10),
        await benchmark_call_hook("call_hook (parallel x10)", [parallel_mw] * 10),
        await benchmark_call_hook("call_hook (awaitable x10)", [awaitable_mw] * 10),
        await benchmark_call_hook(
            "call_hook (mixed x12)",
            [sync_mw, serial_mw, parallel_mw, awaitable_mw] * 3,
        ),
    ]

    for result in results:
        print(f"{result['name']}:")
        print(f"  Iterations: {result['iterations']}")
        print(f"  Middleware: {result['middleware']}")
        print(f"  Elapsed: {result['elapsed_seconds']:.4f}s")
        print(f"  Throughput: {result['calls_per_second']:.0f} calls/sec")
        print(f"  Latency: {result['latency_us']:.2f} µs/call")
        print()


if __name__ == "__main__":
    asyncio.run(run_benchmarks())
