"""
Time-boxed In-Memory Caches

One TTLCache per resource kind. A fresh read short-circuits fetches; an
expired entry is kept so failure paths can still serve it as a stale
fallback.

Usage:
    caches = PipelineCaches()
    caches.news.put(NEWS_KEY, items)
    items = caches.news.get(NEWS_KEY)          # None once 60s have passed
    items = caches.news.get_stale(NEWS_KEY)    # still the last value
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Generic, Hashable, Optional, TypeVar

if TYPE_CHECKING:
    from news_aggregator.models import MarketSnapshot, NewsItem, PricePoint, Sentiment

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

NEWS_TTL_S = 60.0
SENTIMENT_TTL_S = 300.0
MARKET_TTL_S = 30.0
PRICE_HISTORY_TTL_S = 30.0

# The news list is a single value, stored under one key.
NEWS_KEY = "news"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    timestamp: float


class TTLCache(Generic[K, T]):
    """Dict-backed cache whose reads honour a fixed TTL. Nothing is evicted."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._name = name
        self._clock = clock
        self._entries: dict[K, CacheEntry[T]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: K) -> Optional[T]:
        """Fresh read: the value only if it is younger than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp < self._ttl:
            return entry.data
        return None

    def get_stale(self, key: K) -> Optional[T]:
        """Stale read: the last stored value regardless of age. Fallback paths only."""
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def put(self, key: K, value: T) -> None:
        self._entries[key] = CacheEntry(data=value, timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()


@dataclass
class PipelineCaches:
    """The four per-kind caches owned by one pipeline context."""

    clock: Callable[[], float] = time.monotonic
    news_ttl: float = NEWS_TTL_S
    sentiment_ttl: float = SENTIMENT_TTL_S
    market_ttl: float = MARKET_TTL_S
    price_history_ttl: float = PRICE_HISTORY_TTL_S

    news: TTLCache[str, list[NewsItem]] = field(init=False)
    sentiment: TTLCache[str, Sentiment] = field(init=False)
    market: TTLCache[str, MarketSnapshot] = field(init=False)
    price_history: TTLCache[tuple[str, str], list[PricePoint]] = field(init=False)

    def __post_init__(self) -> None:
        self.news = TTLCache(self.news_ttl, name="news", clock=self.clock)
        self.sentiment = TTLCache(self.sentiment_ttl, name="sentiment", clock=self.clock)
        self.market = TTLCache(self.market_ttl, name="market", clock=self.clock)
        self.price_history = TTLCache(
            self.price_history_ttl, name="price_history", clock=self.clock
        )

    def clear(self) -> None:
        for cache in (self.news, self.sentiment, self.market, self.price_history):
            cache.clear()
