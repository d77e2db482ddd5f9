"""
News Aggregator

Fans out to every provider adapter in parallel, merges and de-duplicates the
results, sorts newest first and caches the merged list.

    Flow:
        cache hit? ──yes──> cached list
            │no
            ▼
        gather(adapter.fetch() ...) under a 10s budget
            │
            ▼
        merge (adapter order) → dedupe by id → sort by published_at desc
            │
            ▼
        cache + return

Per-adapter failures are absorbed inside the adapters, and an adapter that
raises anyway contributes an empty batch. A cycle where every adapter raised,
or the aggregate timeout, is retried with exponential backoff, then answered
with the last cached list.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Protocol, Sequence

from news_aggregator.cache import NEWS_KEY, TTLCache
from news_aggregator.core.types import BackoffPolicy, FeedTimeoutError
from news_aggregator.models.news import NewsItem

logger = logging.getLogger(__name__)

AGGREGATE_TIMEOUT_S = 10.0


class NewsSource(Protocol):
    """Anything with the provider adapter contract."""

    name: str

    async def fetch(self) -> list[NewsItem]:
        ...


class DedupePolicy(str, Enum):
    """Which copy survives when two providers report the same id."""

    LAST_SEEN_WINS = "last_seen_wins"
    FIRST_SEEN_WINS = "first_seen_wins"


def merge_items(
    batches: Iterable[Sequence[NewsItem]],
    policy: DedupePolicy = DedupePolicy.LAST_SEEN_WINS,
) -> list[NewsItem]:
    """
    Concatenate provider batches, keep one entry per id, sort newest first.

    "Seen" order is the order of *batches* (the adapter list order), never
    the order in which adapters happened to complete. The sort is stable, so
    equal timestamps keep that order too.
    """
    by_id: dict[str, NewsItem] = {}
    for batch in batches:
        for item in batch:
            if item.id in by_id and policy is DedupePolicy.FIRST_SEEN_WINS:
                continue
            # Replacing a key keeps its original insertion position.
            by_id[item.id] = item
    return sort_newest_first(by_id.values())


def sort_newest_first(items: Iterable[NewsItem]) -> list[NewsItem]:
    return sorted(items, key=lambda item: item.published_at, reverse=True)


def _consume_exception(task: asyncio.Task) -> None:
    # The shared task may outlive every awaiting caller
    if not task.cancelled() and task.exception() is not None:
        logger.debug(
            "Shared aggregation finished with an error",
            extra={"error": str(task.exception())},
        )


class NewsAggregator:
    """
    Parallel fetch-merge-cache over a fixed set of news sources.

    Concurrent fetch_all() callers share a single in-flight aggregation.
    """

    def __init__(
        self,
        providers: Sequence[NewsSource],
        cache: TTLCache[str, list[NewsItem]],
        *,
        timeout_s: float = AGGREGATE_TIMEOUT_S,
        backoff: BackoffPolicy = BackoffPolicy(),
        dedupe_policy: DedupePolicy = DedupePolicy.LAST_SEEN_WINS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not providers:
            raise ValueError("providers must be a non-empty sequence")
        self._providers = list(providers)
        self._cache = cache
        self._timeout_s = timeout_s
        self._backoff = backoff
        self._dedupe_policy = dedupe_policy
        self._sleep = sleep
        self._inflight: Optional[asyncio.Task[list[NewsItem]]] = None

        # Stats
        self._cycles = 0
        self._cache_hits = 0
        self._retries = 0
        self._provider_errors = 0

    @property
    def providers(self) -> list[NewsSource]:
        return list(self._providers)

    async def fetch_all(self) -> list[NewsItem]:
        """
        Return the merged, de-duplicated, newest-first news list.

        Raises:
            FeedTimeoutError: Only when every attempt timed out and there is
                no cached list to fall back on.
        """
        cached = self._cache.get(NEWS_KEY)
        if cached is not None:
            self._cache_hits += 1
            return cached

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._fetch_with_retry(0))
            self._inflight.add_done_callback(_consume_exception)
        return await asyncio.shield(self._inflight)

    async def _fetch_with_retry(self, attempt: int) -> list[NewsItem]:
        try:
            return await self._aggregate_once()
        except Exception as e:
            if self._backoff.should_retry(attempt):
                delay = self._backoff.delay_for(attempt)
                self._retries += 1
                logger.warning(
                    "Aggregation failed, retrying",
                    extra={
                        "attempt": attempt + 1,
                        "delay_seconds": delay,
                        "error": str(e),
                    },
                )
                await self._sleep(delay)
                return await self._fetch_with_retry(attempt + 1)

            stale = self._cache.get_stale(NEWS_KEY)
            if stale is not None:
                logger.error(
                    "Aggregation failed after retries, serving stale news",
                    extra={"error": str(e), "items": len(stale)},
                )
                return stale

            if isinstance(e, FeedTimeoutError):
                logger.error("Aggregation timed out with no cached fallback")
                raise

            logger.error(
                "Aggregation failed after retries, no cached news",
                extra={"error": str(e)},
            )
            return []

    async def _aggregate_once(self) -> list[NewsItem]:
        self._cycles += 1
        try:
            results = await asyncio.wait_for(
                asyncio.gather(
                    *(p.fetch() for p in self._providers),
                    return_exceptions=True,
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise FeedTimeoutError(self._timeout_s) from e

        batches = [
            self._isolate(provider, result)
            for provider, result in zip(self._providers, results)
        ]
        if all(isinstance(r, Exception) for r in results):
            # Nothing succeeded: let the retry / stale fallback handle it
            raise results[0]

        merged = merge_items(batches, self._dedupe_policy)
        self._cache.put(NEWS_KEY, merged)

        logger.info(
            f"Aggregated {len(merged)} news items from {len(self._providers)} providers",
            extra={"per_provider": [len(b) for b in batches]},
        )
        return merged

    def _isolate(self, provider: NewsSource, result: object) -> list[NewsItem]:
        """Turn one adapter's exception into an empty batch."""
        if isinstance(result, Exception):
            self._provider_errors += 1
            logger.error(
                f"{provider.name} fetch raised, contributing no items: {result}",
                extra={"provider": provider.name, "error_type": type(result).__name__},
            )
            return []
        if isinstance(result, BaseException):
            # CancelledError and friends
            raise result
        return list(result)

    def get_stats(self) -> dict[str, int]:
        return {
            "cycles": self._cycles,
            "cache_hits": self._cache_hits,
            "retries": self._retries,
            "provider_errors": self._provider_errors,
        }
