"""Pytest configuration and fixtures."""

import asyncio

import pytest

from dashboard.market.config import MarketSettings


@pytest.fixture
def fast_settings():
    """Settings with short intervals and no jitter so timing tests stay quick and exact."""
    return MarketSettings(
        poll_interval=0.05,
        stream_interval=0.05,
        fetch_timeout=0.5,
        backoff_initial=0.05,
        backoff_factor=2.0,
        backoff_max=0.2,
        backoff_jitter=0.0,
        max_retries=3,
        synthetic_seed=42,
    )


@pytest.fixture
def eventually():
    """Await until predicate() is true, failing after timeout seconds."""

    async def wait(predicate, timeout: float = 2.0, interval: float = 0.01):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                pytest.fail("condition not met within timeout")
            await asyncio.sleep(interval)

    return wait
