"""
News Aggregator Core Utilities

Exceptions and the shared backoff policy.
"""
from news_aggregator.core.types import (
    BackoffPolicy,
    FeedTimeoutError,
    NewsAggregatorError,
    RateLimitedError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "BackoffPolicy",
    "FeedTimeoutError",
    "NewsAggregatorError",
    "RateLimitedError",
    "UpstreamError",
    "ValidationError",
]
