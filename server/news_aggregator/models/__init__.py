"""
News Aggregator Data Models

Frozen dataclasses with validation.
"""
from news_aggregator.models.market import MarketSnapshot, PricePoint, TimeRange
from news_aggregator.models.news import Impact, NewsItem, Sentiment, Votes

__all__ = [
    "Impact",
    "MarketSnapshot",
    "NewsItem",
    "PricePoint",
    "Sentiment",
    "TimeRange",
    "Votes",
]
