"""
Core Type Definitions and Exceptions

Error taxonomy for the aggregation pipeline plus the backoff policy shared
by the aggregator and the refresh scheduler.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class NewsAggregatorError(Exception):
    """Base exception for all news aggregator errors."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ValidationError(NewsAggregatorError):
    """Raised when a provider record cannot be normalized."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = repr(value)[:100]  # Truncate long values
        super().__init__(message, ctx)
        self.field = field
        self.value = value


class UpstreamError(NewsAggregatorError):
    """Raised when an upstream API answers with a non-success status."""

    def __init__(
        self,
        message: str,
        service: str,
        status: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["service"] = service
        if status is not None:
            ctx["status"] = status
        super().__init__(message, ctx)
        self.service = service
        self.status = status


class RateLimitedError(UpstreamError):
    """Raised when an upstream API answers 429. Never retried against the same quota."""

    def __init__(
        self,
        service: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__("Rate limit reached", service=service, status=429, context=context)


class FeedTimeoutError(NewsAggregatorError):
    """Raised when an aggregation cycle exceeds its time budget."""

    def __init__(
        self,
        timeout_s: float,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["timeout_s"] = timeout_s
        super().__init__("Request timeout - please try again", ctx)
        self.timeout_s = timeout_s


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff: delay = base_delay * multiplier ** attempt."""

    base_delay_seconds: float = 1.0
    multiplier: float = 2.0
    max_retries: int = 3

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number *attempt* (0-based)."""
        return self.base_delay_seconds * (self.multiplier ** attempt)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries
