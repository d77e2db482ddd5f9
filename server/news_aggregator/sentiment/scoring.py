"""
Heuristic reliability / impact scoring.

ScoringStrategy is the seam: HeuristicScoring is what production runs,
tests can swap in any object with the same four methods.
"""
from __future__ import annotations

import random
import re
from typing import Optional, Protocol, Sequence

from news_aggregator.models.news import Impact, NewsItem, Sentiment

URGENT_PATTERN = re.compile(r"urgent|breaking|alert|critical|major", re.IGNORECASE)
MARKET_PATTERN = re.compile(r"price|market|crash|surge|soar|plunge", re.IGNORECASE)

DETAILED_BODY_LENGTH = 200
DEFAULT_TRUSTED_SOURCES: tuple[str, ...] = ("CryptoCompare",)


class ScoringStrategy(Protocol):
    def reliability(self, item: NewsItem, sentiment: Sentiment) -> int:
        ...

    def impact(self, item: NewsItem, sentiment: Sentiment) -> Impact:
        ...

    def fallback_reliability(self, item: NewsItem) -> int:
        ...

    def fallback_impact(self, item: NewsItem) -> Impact:
        ...


def keyword_impact(title: str, sentiment: Sentiment) -> Impact:
    """
    High: urgency keywords, or market keywords with a non-neutral sentiment.
    Medium: market keywords, or a non-neutral sentiment.
    """
    urgent = bool(URGENT_PATTERN.search(title))
    market = bool(MARKET_PATTERN.search(title))
    opinionated = sentiment is not Sentiment.NEUTRAL

    if urgent or (market and opinionated):
        return Impact.HIGH
    if market or opinionated:
        return Impact.MEDIUM
    return Impact.LOW


class HeuristicScoring:
    """Randomized base reliability plus content/source bonuses; keyword impact."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        trusted_sources: Sequence[str] = DEFAULT_TRUSTED_SOURCES,
    ) -> None:
        self._rng = rng or random.Random()
        self._trusted_sources = tuple(trusted_sources)

    def is_trusted(self, item: NewsItem) -> bool:
        return any(marker in item.source for marker in self._trusted_sources)

    def reliability(self, item: NewsItem, sentiment: Sentiment) -> int:
        score = self._rng.randrange(75, 95)
        if len(item.body) > DETAILED_BODY_LENGTH:
            score += 5
        if self.is_trusted(item):
            score += 5
        return min(score, 100)

    def impact(self, item: NewsItem, sentiment: Sentiment) -> Impact:
        return keyword_impact(item.title, sentiment)

    def fallback_reliability(self, item: NewsItem) -> int:
        return self._rng.randrange(70, 85)

    def fallback_impact(self, item: NewsItem) -> Impact:
        # ~30% High, next 20% Medium, rest Low
        r = self._rng.random()
        if r > 0.7:
            return Impact.HIGH
        if r > 0.5:
            return Impact.MEDIUM
        return Impact.LOW
