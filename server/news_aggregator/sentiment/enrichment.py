"""
News Enrichment

Attaches sentiment, reliability and impact to every item. Items are
processed in chunks: concurrently inside a chunk, chunk after chunk, with a
short pause in between so the classifier endpoint is not flooded.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from news_aggregator.models.news import NewsItem, Sentiment
from news_aggregator.scheduler import CancellationToken
from news_aggregator.sentiment.classifier import SentimentClassifier
from news_aggregator.sentiment.scoring import HeuristicScoring, ScoringStrategy

logger = logging.getLogger(__name__)

CHUNK_SIZE = 5
CHUNK_PAUSE_S = 0.1

ChunkCallback = Callable[[list[NewsItem]], Awaitable[None]]


@dataclass
class EnricherStats:
    items_enriched: int = 0
    items_fallback: int = 0
    items_reused: int = 0
    chunks_processed: int = 0


class NewsEnricher:
    def __init__(
        self,
        classifier: SentimentClassifier,
        scoring: Optional[ScoringStrategy] = None,
        *,
        chunk_size: int = CHUNK_SIZE,
        chunk_pause_s: float = CHUNK_PAUSE_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self._classifier = classifier
        self._scoring = scoring or HeuristicScoring()
        self._chunk_size = chunk_size
        self._chunk_pause_s = chunk_pause_s
        self._sleep = sleep
        self._stats = EnricherStats()

    @property
    def stats(self) -> EnricherStats:
        return self._stats

    async def enrich_item(self, item: NewsItem, previous: Optional[NewsItem] = None) -> NewsItem:
        """
        Return an enriched copy of *item*. Never raises.

        *previous* is the version of the story already on the feed. When it
        carries the same sentiment its reliability and impact are kept, so a
        story does not get rescored on every refresh.

        When no real classification is available (endpoint down and nothing
        cached) the item keeps its earlier enrichment, or gets NEUTRAL plus
        the fallback scores.
        """
        known = previous if previous is not None and previous.is_enriched else None
        try:
            result = await self._classifier.classify_detailed(item.title)
            if not result.is_fallback:
                if known is not None and known.sentiment is result.sentiment:
                    self._stats.items_reused += 1
                    enriched = item.with_enrichment(
                        sentiment=known.sentiment,
                        reliability=known.reliability,
                        impact=known.impact,
                    )
                else:
                    enriched = item.with_enrichment(
                        sentiment=result.sentiment,
                        reliability=self._scoring.reliability(item, result.sentiment),
                        impact=self._scoring.impact(item, result.sentiment),
                    )
                self._stats.items_enriched += 1
                return enriched
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Enrichment failed, using fallback scores: {e}",
                extra={"news_id": item.id},
            )

        self._stats.items_fallback += 1
        if known is not None:
            return item.carry_enrichment(known)
        return item.with_enrichment(
            sentiment=Sentiment.NEUTRAL,
            reliability=self._scoring.fallback_reliability(item),
            impact=self._scoring.fallback_impact(item),
        )

    async def enrich(
        self,
        items: Sequence[NewsItem],
        *,
        token: Optional[CancellationToken] = None,
        on_chunk: Optional[ChunkCallback] = None,
        previous: Optional[Mapping[str, NewsItem]] = None,
    ) -> list[NewsItem]:
        """
        Enrich *items* chunk by chunk, preserving their order.

        *previous* maps ids to the versions already on the feed. Stops before
        the next chunk once *token* is cancelled and returns what was
        processed so far.
        """
        previous = previous or {}
        enriched: list[NewsItem] = []
        for start in range(0, len(items), self._chunk_size):
            if token is not None and token.cancelled:
                logger.debug("Enrichment abandoned, cycle superseded")
                break

            chunk = items[start:start + self._chunk_size]
            processed = list(
                await asyncio.gather(*(self.enrich_item(i, previous.get(i.id)) for i in chunk))
            )
            enriched.extend(processed)
            self._stats.chunks_processed += 1

            if on_chunk is not None and (token is None or not token.cancelled):
                await on_chunk(processed)

            if start + self._chunk_size < len(items):
                await self._sleep(self._chunk_pause_s)

        return enriched
