"""
Tests for news_aggregator.sentiment.classifier

The completion client is an AsyncMock; no Groq calls are made.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from news_aggregator.cache import TTLCache
from news_aggregator.models.news import Sentiment
from news_aggregator.sentiment.classifier import ResultOrigin, SentimentClassifier
from news_aggregator.sentiment.prompts import MAX_TEXT_LENGTH, SYSTEM_PROMPT, build_user_prompt


@pytest.fixture
def sentiment_cache(fake_clock):
    return TTLCache(300, name="sentiment", clock=fake_clock)


@pytest.fixture
def client():
    mock = AsyncMock()
    mock.complete = AsyncMock(return_value="POSITIVE")
    return mock


# ── Live classification ───────────────────────────────────────────────────────

async def test_live_label_is_returned_and_cached(client, sentiment_cache):
    classifier = SentimentClassifier(client, sentiment_cache)

    result = await classifier.classify_detailed("ETF approved")

    assert result.sentiment is Sentiment.POSITIVE
    assert result.origin is ResultOrigin.LIVE
    assert sentiment_cache.get("ETF approved") is Sentiment.POSITIVE
    client.complete.assert_awaited_once_with(SYSTEM_PROMPT, "ETF approved")


@pytest.mark.parametrize("raw", ["Bullish", "I think it is positive overall", ""])
async def test_unrecognized_output_coerces_to_neutral(client, sentiment_cache, raw):
    client.complete.return_value = raw
    classifier = SentimentClassifier(client, sentiment_cache)

    assert await classifier.classify("Some headline") is Sentiment.NEUTRAL
    assert classifier.stats.coerced == 1


async def test_cached_text_skips_client(client, sentiment_cache):
    classifier = SentimentClassifier(client, sentiment_cache)
    await classifier.classify("Same text")

    result = await classifier.classify_detailed("Same text")

    assert result.origin is ResultOrigin.CACHE
    assert client.complete.await_count == 1


async def test_expired_entry_is_refreshed(client, sentiment_cache, fake_clock):
    classifier = SentimentClassifier(client, sentiment_cache)
    await classifier.classify("Same text")
    fake_clock.advance(301)

    await classifier.classify("Same text")

    assert client.complete.await_count == 2


# ── Failure fallbacks ─────────────────────────────────────────────────────────

async def test_failure_without_cache_defaults_to_neutral(client, sentiment_cache):
    client.complete.side_effect = ConnectionError("unreachable")
    classifier = SentimentClassifier(client, sentiment_cache)

    result = await classifier.classify_detailed("Bitcoin crashes")

    assert result.sentiment is Sentiment.NEUTRAL
    assert result.origin is ResultOrigin.DEFAULT
    assert result.is_fallback
    assert classifier.stats.failures == 1


async def test_failure_serves_stale_label(client, sentiment_cache, fake_clock):
    sentiment_cache.put("Bitcoin crashes", Sentiment.NEGATIVE)
    fake_clock.advance(1_000)
    client.complete.side_effect = TimeoutError()
    classifier = SentimentClassifier(client, sentiment_cache)

    result = await classifier.classify_detailed("Bitcoin crashes")

    assert result.sentiment is Sentiment.NEGATIVE
    assert result.origin is ResultOrigin.STALE
    assert not result.is_fallback


async def test_rate_limiter_is_acquired_per_call(client, sentiment_cache):
    limiter = MagicMock()
    limiter.acquire = AsyncMock()
    classifier = SentimentClassifier(client, sentiment_cache, limiter)

    await classifier.classify("one")
    await classifier.classify("two")
    await classifier.classify("one")  # cached

    assert limiter.acquire.await_count == 2


# ── Prompts ───────────────────────────────────────────────────────────────────

def test_user_prompt_is_trimmed():
    prompt = build_user_prompt("  " + "a" * 1_000 + "  ")
    assert len(prompt) == MAX_TEXT_LENGTH + 1
    assert prompt.endswith("…")


def test_system_prompt_names_all_labels():
    for label in Sentiment:
        assert label.value in SYSTEM_PROMPT
