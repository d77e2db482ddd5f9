"""
Feed Service

The interface UI consumers call. Wires the aggregator, enricher, classifier
and market client around one PipelineContext, which owns every cache and
rate limiter, so separate pipelines never share state.

Usage:
    async with aiohttp.ClientSession() as session:
        service = FeedService.from_settings(settings, session)
        items = await service.fetch_feed()
        btc = await service.fetch_market_snapshot("bitcoin")
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

import aiohttp

from news_aggregator.aggregator import DedupePolicy, NewsAggregator, NewsSource
from news_aggregator.cache import PipelineCaches
from news_aggregator.config import CacheConfig, Settings
from news_aggregator.core.types import BackoffPolicy
from news_aggregator.market.client import MarketDataClient
from news_aggregator.mock_data import MockCompletionClient, MockDataGenerator, MockNewsProvider
from news_aggregator.models.market import MarketSnapshot, PricePoint, TimeRange
from news_aggregator.models.news import NewsItem, Sentiment
from news_aggregator.providers import (
    CoinGeckoNewsProvider,
    CryptoCompareProvider,
    CryptoPanicProvider,
)
from news_aggregator.rate_limiter import RateLimiter
from news_aggregator.scheduler import CancellationToken
from news_aggregator.sentiment.classifier import CompletionClient, SentimentClassifier
from news_aggregator.sentiment.enrichment import NewsEnricher
from news_aggregator.sentiment.scoring import ScoringStrategy

logger = logging.getLogger(__name__)

# Stories kept in the reconciled snapshot
MAX_FEED_ITEMS = 500


@dataclass
class PipelineContext:
    """Caches and rate limiters shared by one pipeline instance."""

    clock: Callable[[], float] = time.monotonic
    cache_config: CacheConfig = CacheConfig()
    max_requests: int = 10
    window_s: float = 60.0
    caches: PipelineCaches = field(init=False)
    market_limiter: RateLimiter = field(init=False)
    classifier_limiter: RateLimiter = field(init=False)

    def __post_init__(self) -> None:
        ttl = self.cache_config
        self.caches = PipelineCaches(
            clock=self.clock,
            news_ttl=ttl.news_ttl_s,
            sentiment_ttl=ttl.sentiment_ttl_s,
            market_ttl=ttl.market_ttl_s,
            price_history_ttl=ttl.price_history_ttl_s,
        )
        self.market_limiter = RateLimiter(
            self.max_requests, self.window_s, name="market", clock=self.clock
        )
        self.classifier_limiter = RateLimiter(
            self.max_requests, self.window_s, name="classifier", clock=self.clock
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineContext:
        return cls(
            cache_config=settings.cache,
            max_requests=settings.rate_limit.max_requests,
            window_s=settings.rate_limit.window_s,
        )


def reconcile(
    current: Sequence[NewsItem],
    updates: Iterable[NewsItem],
    limit: int = MAX_FEED_ITEMS,
) -> list[NewsItem]:
    """
    Merge *updates* into *current* by id.

    Known ids are replaced in place, new ids are appended, and the result is
    re-sorted newest first and cut to the newest *limit* stories. An update
    lacking enrichment keeps the enrichment of the version it replaces.
    """
    merged = list(current)
    index = {item.id: pos for pos, item in enumerate(merged)}
    for item in updates:
        pos = index.get(item.id)
        if pos is None:
            index[item.id] = len(merged)
            merged.append(item)
        else:
            merged[pos] = item.carry_enrichment(merged[pos])
    merged.sort(key=lambda i: i.published_at, reverse=True)
    return merged[:limit]


class FeedService:
    def __init__(
        self,
        aggregator: NewsAggregator,
        enricher: NewsEnricher,
        classifier: SentimentClassifier,
        market: MarketDataClient,
    ) -> None:
        self._aggregator = aggregator
        self._enricher = enricher
        self._classifier = classifier
        self._market = market
        self._snapshot: list[NewsItem] = []

    @classmethod
    def build(
        cls,
        context: PipelineContext,
        session: aiohttp.ClientSession,
        providers: Sequence[NewsSource],
        completion_client: CompletionClient,
        *,
        scoring: Optional[ScoringStrategy] = None,
        aggregate_timeout_s: float = 10.0,
        dedupe_policy: DedupePolicy = DedupePolicy.LAST_SEEN_WINS,
        backoff: BackoffPolicy = BackoffPolicy(),
        market_base_url: str = "https://api.coingecko.com/api/v3",
        market_api_key: str = "",
        market_timeout_s: float = 5.0,
        mock: Optional[MockDataGenerator] = None,
    ) -> FeedService:
        caches = context.caches
        classifier = SentimentClassifier(
            completion_client, caches.sentiment, context.classifier_limiter
        )
        return cls(
            aggregator=NewsAggregator(
                providers,
                caches.news,
                timeout_s=aggregate_timeout_s,
                backoff=backoff,
                dedupe_policy=dedupe_policy,
            ),
            enricher=NewsEnricher(classifier, scoring),
            classifier=classifier,
            market=MarketDataClient(
                session,
                caches.market,
                caches.price_history,
                context.market_limiter,
                base_url=market_base_url,
                api_key=market_api_key,
                timeout_s=market_timeout_s,
                mock=mock,
            ),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: aiohttp.ClientSession,
        *,
        use_mock: bool = False,
    ) -> FeedService:
        context = PipelineContext.from_settings(settings)
        mock = MockDataGenerator()

        providers: list[NewsSource]
        if use_mock:
            providers = [MockNewsProvider(mock)]
        else:
            cfg = settings.providers
            providers = [
                CryptoCompareProvider(
                    session,
                    api_key=cfg.cryptocompare_api_key,
                    timeout_s=cfg.request_timeout_s,
                ),
                CryptoPanicProvider(
                    session,
                    api_key=cfg.cryptopanic_auth_token,
                    timeout_s=cfg.request_timeout_s,
                ),
            ]
            if cfg.coingecko_news_enabled:
                providers.append(
                    CoinGeckoNewsProvider(
                        session,
                        api_key=cfg.coingecko_api_key,
                        timeout_s=cfg.request_timeout_s,
                    )
                )

        completion_client: CompletionClient
        if use_mock or not settings.classifier.enabled:
            if not use_mock:
                logger.warning("GROQ_API_KEY not set, sentiment uses the mock classifier")
            completion_client = MockCompletionClient()
        else:
            from news_aggregator.sentiment.groq_client import GroqClient

            completion_client = GroqClient(
                api_key=settings.classifier.groq_api_key,
                model=settings.classifier.model,
                timeout_s=settings.classifier.timeout_s,
            )

        return cls.build(
            context,
            session,
            providers,
            completion_client,
            aggregate_timeout_s=settings.providers.aggregate_timeout_s,
            market_base_url=settings.market.base_url,
            market_api_key=settings.market.api_key,
            market_timeout_s=settings.market.timeout_s,
            mock=mock,
        )

    @property
    def providers(self) -> list[NewsSource]:
        return self._aggregator.providers

    # ── Consumer API ─────────────────────────────────────────────────────────

    def snapshot(self) -> list[NewsItem]:
        """Current reconciled feed, newest first."""
        return list(self._snapshot)

    async def fetch_feed(
        self,
        token: Optional[CancellationToken] = None,
    ) -> list[NewsItem]:
        """
        Aggregate, enrich and reconcile one feed cycle.

        Each enriched chunk is folded into the snapshot as soon as it is
        ready. Stories already on the feed keep their scores while their
        sentiment is unchanged. A cancelled token stops the cycle before its
        next chunk.

        Raises:
            FeedTimeoutError: When aggregation timed out with nothing cached.
        """
        raw = await self._aggregator.fetch_all()
        if token is not None and token.cancelled:
            return self.snapshot()

        async def fold(chunk: list[NewsItem]) -> None:
            self._snapshot = reconcile(self._snapshot, chunk)

        known = {item.id: item for item in self._snapshot}
        await self._enricher.enrich(raw, token=token, on_chunk=fold, previous=known)
        logger.info(
            f"Feed refreshed: {len(self._snapshot)} items",
            extra={"raw_items": len(raw)},
        )
        return self.snapshot()

    async def fetch_market_snapshot(self, symbol: str = "bitcoin") -> MarketSnapshot:
        return await self._market.fetch_market_snapshot(symbol)

    async def fetch_price_history(
        self,
        symbol: str = "bitcoin",
        time_range: TimeRange | str = TimeRange.DAY,
    ) -> list[PricePoint]:
        return await self._market.fetch_price_history(symbol, time_range)

    async def classify(self, text: str) -> Sentiment:
        return await self._classifier.classify(text)

    async def fetch_market(
        self,
        symbol: str,
        time_range: TimeRange | str,
    ) -> tuple[MarketSnapshot, list[PricePoint]]:
        """Snapshot and history together, for the market polling cycle."""
        snapshot, history = await asyncio.gather(
            self.fetch_market_snapshot(symbol),
            self.fetch_price_history(symbol, time_range),
        )
        return snapshot, history
