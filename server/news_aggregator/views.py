"""
Consumer Views

Pure helpers the dashboard applies to a feed snapshot: filtering, sorting
and the headline metrics. None of them mutate their input.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from news_aggregator.models.news import NewsItem, Sentiment

VERIFIED_RELIABILITY = 90
BUY_THRESHOLD = 7.0


class FeedFilter(str, Enum):
    ALL = "all"
    VERIFIED = "verified"
    HIGH_IMPACT = "high-impact"

    @classmethod
    def from_string(cls, value: str) -> "FeedFilter":
        for member in cls:
            if member.value == value.lower():
                return member
        raise ValueError(f"Unknown feed filter: {value}")


class SortKey(str, Enum):
    DATE = "date"
    IMPACT = "impact"
    RELIABILITY = "reliability"

    @classmethod
    def from_string(cls, value: str) -> "SortKey":
        for member in cls:
            if member.value == value.lower():
                return member
        raise ValueError(f"Unknown sort key: {value}")


class Signal(str, Enum):
    BUY = "Buy"
    SELL = "Sell"


@dataclass(frozen=True)
class FeedMetrics:
    """Aggregate numbers shown above the feed."""

    sentiment_score: float
    reliability: int
    signal: Signal
    total: int


def _matches(item: NewsItem, feed_filter: FeedFilter) -> bool:
    if feed_filter is FeedFilter.VERIFIED:
        return (item.reliability or 0) > VERIFIED_RELIABILITY
    if feed_filter is FeedFilter.HIGH_IMPACT:
        return item.impact is not None and item.impact.rank == 3
    return True


def filter_items(
    items: Iterable[NewsItem],
    feed_filter: FeedFilter = FeedFilter.ALL,
    query: str = "",
) -> list[NewsItem]:
    """Apply *feed_filter* and a case-insensitive search over title and body."""
    needle = query.strip().lower()
    return [
        item
        for item in items
        if _matches(item, feed_filter)
        and (not needle or needle in item.title.lower() or needle in item.body.lower())
    ]


def _sort_value(item: NewsItem, key: SortKey) -> int:
    if key is SortKey.IMPACT:
        return item.impact.rank if item.impact is not None else 0
    if key is SortKey.RELIABILITY:
        return item.reliability or 0
    return item.published_at


def sort_items(
    items: Iterable[NewsItem],
    key: SortKey = SortKey.DATE,
    descending: bool = True,
) -> list[NewsItem]:
    # sorted() is stable, so ties keep their incoming order either way
    return sorted(items, key=lambda item: _sort_value(item, key), reverse=descending)


def compute_metrics(items: Sequence[NewsItem]) -> FeedMetrics:
    """
    Sentiment score is the positive share scaled to 0-10 with one decimal;
    reliability is the rounded mean over items that carry one.
    """
    if not items:
        return FeedMetrics(sentiment_score=0.0, reliability=0, signal=Signal.SELL, total=0)

    positive = sum(1 for item in items if item.sentiment is Sentiment.POSITIVE)
    score = round(positive / len(items) * 10, 1)

    scored = [item.reliability for item in items if item.reliability is not None]
    reliability = round(sum(scored) / len(scored)) if scored else 0

    return FeedMetrics(
        sentiment_score=score,
        reliability=reliability,
        signal=Signal.BUY if score > BUY_THRESHOLD else Signal.SELL,
        total=len(items),
    )
