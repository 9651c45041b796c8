"""Shared fixtures for the reliability benchmarks.

Async benchmarks reuse one session-scoped event loop so loop start-up cost
stays out of the measured time.
"""

from __future__ import annotations

import asyncio

import pytest

from mp_reliability.testing import HistoryBuilder


@pytest.fixture(scope="session")
def bench_loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture(scope="session")
def run_async(bench_loop):
    """Run a coroutine to completion on the shared loop.

    Usage inside a benchmark::

        def test_something(benchmark, run_async):
            benchmark(lambda: run_async(manager.run("api", op)))
    """

    def _run(coro):
        return bench_loop.run_until_complete(coro)

    return _run


@pytest.fixture(scope="session")
def mixed_history():
    """Fifty attempts: mostly passing, some network failures and timeouts."""
    from mp_reliability.kernel.errors import ErrorKind

    return (
        HistoryBuilder("checkout")
        .pattern("SSSSFSSSSS" * 3, kind=ErrorKind.NETWORK)
        .pattern("SSFSSSSSFS" * 2, kind=ErrorKind.TIMEOUT)
        .build()
    )
