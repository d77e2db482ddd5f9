"""
Tests for news_aggregator.aggregator

Providers are in-memory StubSources; backoff sleeps are recorded, not awaited.
"""
import asyncio
import gc

import pytest

from news_aggregator.aggregator import DedupePolicy, NewsAggregator, merge_items
from news_aggregator.cache import NEWS_KEY, TTLCache
from news_aggregator.core.types import BackoffPolicy, FeedTimeoutError


class StubSource:
    def __init__(self, name, items=(), *, hang=False, error=None, delay=0.0):
        self.name = name
        self.items = list(items)
        self.hang = hang
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.items)


@pytest.fixture
def news_cache(fake_clock):
    return TTLCache(60, name="news", clock=fake_clock)


def _aggregator(providers, cache, sleep, **kwargs):
    return NewsAggregator(providers, cache, sleep=sleep, **kwargs)


# ── merge_items ───────────────────────────────────────────────────────────────

def test_merge_sorts_newest_first(make_item):
    batches = [
        [make_item(id="a", published_at=100), make_item(id="b", published_at=300)],
        [make_item(id="c", published_at=200)],
    ]
    merged = merge_items(batches)
    assert [i.id for i in merged] == ["b", "c", "a"]


def test_merge_last_seen_wins(make_item):
    batches = [
        [make_item(id="x", title="From A")],
        [make_item(id="x", title="From B")],
    ]
    merged = merge_items(batches, DedupePolicy.LAST_SEEN_WINS)
    assert [i.title for i in merged] == ["From B"]


def test_merge_first_seen_wins(make_item):
    batches = [
        [make_item(id="x", title="From A")],
        [make_item(id="x", title="From B")],
    ]
    merged = merge_items(batches, DedupePolicy.FIRST_SEEN_WINS)
    assert [i.title for i in merged] == ["From A"]


def test_merge_ties_keep_adapter_order(make_item):
    batches = [
        [make_item(id="a", published_at=100)],
        [make_item(id="b", published_at=100)],
    ]
    assert [i.id for i in merge_items(batches)] == ["a", "b"]


# ── fetch_all ─────────────────────────────────────────────────────────────────

async def test_six_plus_six_with_two_overlaps_gives_ten(make_item, news_cache, recorded_sleep):
    a_items = [make_item(id=f"s{n}", published_at=1_000 + n) for n in range(6)]
    # ids s4 and s5 overlap
    b_items = [make_item(id=f"s{n}", published_at=1_000 + n) for n in range(4, 10)]
    aggregator = _aggregator(
        [StubSource("a", a_items), StubSource("b", b_items)], news_cache, recorded_sleep
    )

    items = await aggregator.fetch_all()

    assert len(items) == 10
    assert len({i.id for i in items}) == 10
    times = [i.published_at for i in items]
    assert times == sorted(times, reverse=True)


async def test_cache_hit_is_idempotent(make_item, news_cache, recorded_sleep):
    source = StubSource("a", [make_item(id="a"), make_item(id="b", published_at=5)])
    aggregator = _aggregator([source], news_cache, recorded_sleep)

    first = await aggregator.fetch_all()
    second = await aggregator.fetch_all()

    assert first == second
    assert source.calls == 1
    assert aggregator.get_stats()["cache_hits"] == 1


async def test_cache_expiry_triggers_new_fetch(make_item, news_cache, fake_clock, recorded_sleep):
    source = StubSource("a", [make_item()])
    aggregator = _aggregator([source], news_cache, recorded_sleep)

    await aggregator.fetch_all()
    fake_clock.advance(61)
    await aggregator.fetch_all()

    assert source.calls == 2


async def test_empty_provider_does_not_block_others(make_item, news_cache, recorded_sleep):
    healthy = StubSource("a", [make_item(id="a")])
    failed = StubSource("b", [])
    aggregator = _aggregator([healthy, failed], news_cache, recorded_sleep)

    items = await aggregator.fetch_all()

    assert [i.id for i in items] == ["a"]
    assert recorded_sleep.delays == []


async def test_throwing_provider_does_not_block_others(make_item, news_cache, recorded_sleep):
    broken = StubSource("broken", error=OverflowError("int too large to convert to float"))
    healthy = StubSource("b", [make_item(id="a", published_at=100), make_item(id="b", published_at=200)])
    aggregator = _aggregator([broken, healthy], news_cache, recorded_sleep)

    items = await aggregator.fetch_all()

    assert [i.id for i in items] == ["b", "a"]
    assert recorded_sleep.delays == []
    assert aggregator.get_stats()["provider_errors"] == 1
    assert news_cache.get(NEWS_KEY) == items


async def test_provider_cancellation_is_not_swallowed(make_item, news_cache, recorded_sleep):
    cancelled = StubSource("cancelled", error=asyncio.CancelledError())
    healthy = StubSource("b", [make_item(id="a")])
    aggregator = _aggregator([cancelled, healthy], news_cache, recorded_sleep)

    with pytest.raises(asyncio.CancelledError):
        await aggregator.fetch_all()


async def test_abandoned_shared_fetch_does_not_leak_its_error(news_cache, recorded_sleep):
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    try:
        aggregator = _aggregator(
            [StubSource("slow", hang=True)],
            news_cache,
            recorded_sleep,
            timeout_s=0.01,
            backoff=BackoffPolicy(max_retries=0),
        )
        caller = asyncio.create_task(aggregator.fetch_all())
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await asyncio.wait([aggregator._inflight])
        del aggregator, caller
        gc.collect()
    finally:
        loop.set_exception_handler(None)

    assert reported == []


async def test_timeout_retries_with_doubling_backoff_then_raises(news_cache, recorded_sleep):
    aggregator = _aggregator(
        [StubSource("slow", hang=True)], news_cache, recorded_sleep, timeout_s=0.01
    )

    with pytest.raises(FeedTimeoutError):
        await aggregator.fetch_all()

    assert recorded_sleep.delays == [1.0, 2.0, 4.0]
    assert aggregator.get_stats()["cycles"] == 4


async def test_timeout_serves_stale_cache(make_item, news_cache, fake_clock, recorded_sleep):
    stale = [make_item(id="old")]
    news_cache.put(NEWS_KEY, stale)
    fake_clock.advance(120)
    aggregator = _aggregator(
        [StubSource("slow", hang=True)], news_cache, recorded_sleep, timeout_s=0.01
    )

    items = await aggregator.fetch_all()

    assert items == stale
    assert recorded_sleep.delays == [1.0, 2.0, 4.0]


async def test_unexpected_error_without_cache_returns_empty(news_cache, recorded_sleep):
    aggregator = _aggregator(
        [StubSource("broken", error=RuntimeError("boom"))],
        news_cache,
        recorded_sleep,
        backoff=BackoffPolicy(max_retries=1),
    )

    assert await aggregator.fetch_all() == []
    assert recorded_sleep.delays == [1.0]


async def test_retry_recovers(make_item, news_cache, recorded_sleep):
    source = StubSource("flaky", [make_item(id="ok")])
    source.error = RuntimeError("first call fails")

    async def clear_error(delay):
        recorded_sleep.delays.append(delay)
        source.error = None

    aggregator = NewsAggregator([source], news_cache, sleep=clear_error)

    items = await aggregator.fetch_all()

    assert [i.id for i in items] == ["ok"]
    assert source.calls == 2


async def test_concurrent_callers_share_one_fetch(make_item, news_cache, recorded_sleep):
    source = StubSource("a", [make_item()], delay=0.01)
    aggregator = _aggregator([source], news_cache, recorded_sleep)

    first, second = await asyncio.gather(aggregator.fetch_all(), aggregator.fetch_all())

    assert first == second
    assert source.calls == 1


def test_requires_providers(news_cache):
    with pytest.raises(ValueError):
        NewsAggregator([], news_cache)
