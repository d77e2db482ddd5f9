"""
Mock data for degraded mode and offline runs.

One generator, parameterized by resource kind, replaces the ad-hoc fallback
values that each call site would otherwise build:

    gen = MockDataGenerator()
    gen.generate(ResourceKind.MARKET_SNAPSHOT, symbol="bitcoin")
    gen.generate(ResourceKind.PRICE_HISTORY, time_range=TimeRange.WEEK)
    gen.generate(ResourceKind.NEWS, count=12)

MockNewsProvider and MockCompletionClient plug the generator into the
pipeline for `main.py --mock`, so it runs without any API key.
"""
from __future__ import annotations

import asyncio
import hashlib
import random
import time
from enum import Enum
from typing import Any, Optional

from news_aggregator.models import (
    MarketSnapshot,
    NewsItem,
    PricePoint,
    Sentiment,
    TimeRange,
)

BASE_PRICE = 45_000.0
BASE_VOLUME = 25_000_000_000.0
BASE_MARKET_CAP = 850_000_000_000.0
BASE_DOMINANCE = 45.5
BASE_CHANGE = 2.5

POINTS_PER_DAY = 24
VOLATILITY = 0.002  # 0.2% per point

HEADLINES: list[tuple[str, str]] = [
    # (headline, body)
    ("Bitcoin surges past $135K as institutional buyers seek hedge against geopolitical risk", ""),
    ("Ethereum breaks $8,200 on record DeFi inflows during market turmoil", ""),
    ("Solana TVL hits $28B as traders migrate from centralized exchanges", ""),
    ("Tether treasury mints $2B USDT in 24 hours amid flight from fiat", ""),
    ("SEC approves spot Ethereum ETF, trading begins Monday", ""),
    ("Bitcoin hash rate hits all-time high as miners price in $150K target", ""),
    ("BlackRock Bitcoin ETF sees $2.1B single-day inflow, largest ever", ""),
    ("Circle pauses USDC redemptions for 4 hours citing banking partner issues", ""),
    ("Ripple wins SEC appeal, XRP surges 28% in one hour", ""),
    ("Bitcoin dominance rises to 58% as altcoins sell off", ""),
    ("BREAKING: Major exchange halts withdrawals after suspected exploit", ""),
    ("Crypto market crash wipes $300B as leveraged longs liquidated", ""),
    ("MicroStrategy announces additional $1.5B Bitcoin purchase", ""),
    ("Coinbase reports 3x surge in institutional trading volume", ""),
    ("US Treasury proposes new KYC rules for DeFi protocols", ""),
    ("Layer-2 fees plunge after network upgrade goes live", ""),
]

MOCK_SOURCES = ("Mock - Wire", "Mock - Desk", "Mock - Chain")


class ResourceKind(str, Enum):
    MARKET_SNAPSHOT = "market_snapshot"
    PRICE_HISTORY = "price_history"
    NEWS = "news"


class MockDataGenerator:
    """Realistic-looking synthetic data. Pass a seeded Random for reproducible output."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Any = time.time,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock

    def generate(self, kind: ResourceKind, **params: Any) -> Any:
        if kind is ResourceKind.MARKET_SNAPSHOT:
            return self.market_snapshot(params.get("symbol", "bitcoin"))
        if kind is ResourceKind.PRICE_HISTORY:
            return self.price_history(
                TimeRange.from_string(params.get("time_range", TimeRange.DAY)),
                now=params.get("now"),
            )
        if kind is ResourceKind.NEWS:
            return self.news_items(params.get("count", 10), now=params.get("now"))
        raise ValueError(f"Unknown resource kind: {kind!r}")

    def _jitter(self, spread: float) -> float:
        return (self._rng.random() - 0.5) * spread

    def market_snapshot(self, symbol: str = "bitcoin") -> MarketSnapshot:
        return MarketSnapshot(
            symbol=symbol,
            price=BASE_PRICE + self._jitter(1_000),
            volume_24h=BASE_VOLUME + self._jitter(5_000_000_000),
            market_cap=BASE_MARKET_CAP + self._jitter(10_000_000_000),
            dominance=BASE_DOMINANCE + self._jitter(2),
            change_24h=BASE_CHANGE + self._jitter(1),
            is_mock=True,
        )

    def price_history(
        self,
        time_range: TimeRange = TimeRange.DAY,
        now: Optional[int] = None,
    ) -> list[PricePoint]:
        """Random walk with a slight trend bias, one point per hour."""
        now = int(self._clock()) if now is None else now
        interval = 86_400 // POINTS_PER_DAY
        points = time_range.days * POINTS_PER_DAY
        trend = self._jitter(0.001)

        price = BASE_PRICE
        history: list[PricePoint] = []
        for i in range(points):
            price *= 1 + self._jitter(2 * VOLATILITY) + trend
            history.append(
                PricePoint(
                    time=now - (points - i) * interval,
                    price=price,
                    volume=self.volume(),
                )
            )
        return history

    def volume(self) -> float:
        """Random volume between 500M and 1.5B."""
        return self._rng.random() * 1_000_000_000 + 500_000_000

    def news_items(self, count: int = 10, now: Optional[int] = None) -> list[NewsItem]:
        now = int(self._clock()) if now is None else now
        picks = self._rng.sample(HEADLINES, k=min(count, len(HEADLINES)))
        items: list[NewsItem] = []
        for offset, (headline, body) in enumerate(picks):
            digest = hashlib.sha1(headline.encode("utf-8")).hexdigest()[:16]
            items.append(
                NewsItem(
                    id=f"mock-{digest}",
                    published_at=now - offset * self._rng.randint(30, 600),
                    title=headline,
                    body=body,
                    url="",
                    source=self._rng.choice(MOCK_SOURCES),
                )
            )
        return items


class MockNewsProvider:
    """Stands in for a real provider adapter in --mock runs."""

    name = "mock"
    trusted = False

    def __init__(self, generator: Optional[MockDataGenerator] = None, count: int = 8) -> None:
        self._generator = generator or MockDataGenerator()
        self._count = count

    async def fetch(self) -> list[NewsItem]:
        await asyncio.sleep(0)
        return self._generator.generate(ResourceKind.NEWS, count=self._count)


class MockCompletionClient:
    """Stands in for GroqClient: random label after a simulated latency."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        latency_s: float = 0.05,
    ) -> None:
        self._rng = rng or random.Random()
        self._latency_s = latency_s

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        await asyncio.sleep(self._latency_s)
        return self._rng.choice([s.value for s in Sentiment])
