"""
Tests for news_aggregator.rate_limiter

The clock is fake and sleeping advances it, so window arithmetic is exact.
"""
import asyncio

import pytest

from conftest import RecordingSleep
from news_aggregator.rate_limiter import RateLimiter


@pytest.fixture
def limiter_parts(fake_clock):
    sleep = RecordingSleep(fake_clock)
    return fake_clock, sleep


def test_rejects_non_positive_quota():
    with pytest.raises(ValueError):
        RateLimiter(max_requests=0)


async def test_grants_up_to_quota_without_waiting(limiter_parts):
    clock, sleep = limiter_parts
    limiter = RateLimiter(10, 60, clock=clock, sleep=sleep)

    for _ in range(10):
        await limiter.acquire()

    assert limiter.count == 10
    assert sleep.delays == []


async def test_waits_for_rest_of_window_when_exhausted(limiter_parts):
    clock, sleep = limiter_parts
    limiter = RateLimiter(10, 60, clock=clock, sleep=sleep)
    for _ in range(10):
        await limiter.acquire()

    clock.advance(10)
    await limiter.acquire()

    assert sleep.delays == [50]
    assert limiter.count == 1


async def test_window_resets_after_it_elapses(limiter_parts):
    clock, sleep = limiter_parts
    limiter = RateLimiter(2, 60, clock=clock, sleep=sleep)
    await limiter.acquire()
    await limiter.acquire()

    clock.advance(61)
    await limiter.acquire()

    assert sleep.delays == []
    assert limiter.count == 1


async def test_concurrent_waiters_share_one_wait(limiter_parts):
    clock, sleep = limiter_parts
    limiter = RateLimiter(2, 60, clock=clock, sleep=sleep)

    await asyncio.gather(*(limiter.acquire() for _ in range(3)))

    assert sleep.delays == [60]
    assert limiter.count == 1


async def test_context_manager_acquires(limiter_parts):
    clock, sleep = limiter_parts
    limiter = RateLimiter(5, 60, clock=clock, sleep=sleep)

    async with limiter:
        pass

    assert limiter.count == 1
