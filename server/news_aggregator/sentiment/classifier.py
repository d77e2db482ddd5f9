"""
Sentiment Classifier

Cached, rate-limited POSITIVE / NEUTRAL / NEGATIVE classification of a text.
classify() never raises: failures fall back to the last known label for the
text, or NEUTRAL when there is none.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from news_aggregator.cache import TTLCache
from news_aggregator.models.news import Sentiment
from news_aggregator.rate_limiter import RateLimiter
from news_aggregator.sentiment.prompts import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """GroqClient, or anything else answering a system + user prompt."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class ResultOrigin(str, Enum):
    LIVE = "live"        # fresh answer from the endpoint
    CACHE = "cache"      # fresh cache hit, no call made
    STALE = "stale"      # call failed, expired cache value served
    DEFAULT = "default"  # call failed, nothing cached: NEUTRAL


@dataclass(frozen=True)
class ClassificationResult:
    sentiment: Sentiment
    origin: ResultOrigin

    @property
    def is_fallback(self) -> bool:
        return self.origin is ResultOrigin.DEFAULT


@dataclass
class ClassifierStats:
    calls: int = 0
    cache_hits: int = 0
    failures: int = 0
    coerced: int = 0


class SentimentClassifier:
    def __init__(
        self,
        client: CompletionClient,
        cache: TTLCache[str, Sentiment],
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._stats = ClassifierStats()

    @property
    def stats(self) -> ClassifierStats:
        return self._stats

    async def classify(self, text: str) -> Sentiment:
        result = await self.classify_detailed(text)
        return result.sentiment

    async def classify_detailed(self, text: str) -> ClassificationResult:
        cached = self._cache.get(text)
        if cached is not None:
            self._stats.cache_hits += 1
            return ClassificationResult(cached, ResultOrigin.CACHE)

        try:
            if self._rate_limiter is not None:
                await self._rate_limiter.acquire()
            self._stats.calls += 1
            raw = await self._client.complete(SYSTEM_PROMPT, build_user_prompt(text))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._stats.failures += 1
            stale = self._cache.get_stale(text)
            logger.warning(
                "Sentiment classification failed, using fallback",
                extra={"error": str(e), "has_cached": stale is not None},
            )
            if stale is not None:
                return ClassificationResult(stale, ResultOrigin.STALE)
            return ClassificationResult(Sentiment.NEUTRAL, ResultOrigin.DEFAULT)

        sentiment = Sentiment.coerce(raw)
        if sentiment.value != str(raw).strip().upper():
            self._stats.coerced += 1
            logger.debug(f"Coerced classifier output {raw!r} to {sentiment.value}")

        self._cache.put(text, sentiment)
        return ClassificationResult(sentiment, ResultOrigin.LIVE)
