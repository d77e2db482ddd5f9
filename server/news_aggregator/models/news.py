"""
News Data Models

Canonical news item shared by every provider adapter, the enrichment stage
and the consumer views. Frozen dataclasses with __post_init__ validation;
enrichment produces a new instance instead of mutating one.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional


class Sentiment(str, Enum):
    """Sentiment classification returned by the classifier."""

    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"

    @classmethod
    def coerce(cls, value: Any) -> "Sentiment":
        """Map any raw label to a Sentiment, defaulting to NEUTRAL."""
        if isinstance(value, Sentiment):
            return value
        if not isinstance(value, str):
            return cls.NEUTRAL
        cleaned = value.strip().strip(".!\"'").upper()
        for member in cls:
            if member.value == cleaned:
                return member
        return cls.NEUTRAL


class Impact(str, Enum):
    """Expected market impact of a story."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _IMPACT_RANK[self]


_IMPACT_RANK = {Impact.HIGH: 3, Impact.MEDIUM: 2, Impact.LOW: 1}


@dataclass(frozen=True)
class Votes:
    """Community votes as reported by the provider."""

    positive: int = 0
    negative: int = 0

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["Votes"]:
        if not isinstance(raw, dict):
            return None
        try:
            return cls(
                positive=int(raw.get("positive") or 0),
                negative=int(raw.get("negative") or 0),
            )
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class NewsItem:
    """
    A normalized news story, optionally enriched.

    sentiment / reliability / impact stay None until the enrichment stage
    runs; once set they are never cleared again.
    """

    # Core identifiers
    id: str
    published_at: int

    # Content
    title: str
    body: str
    url: str
    source: str
    image_url: str = ""

    # Source-provided
    votes: Optional[Votes] = None

    # Derived by enrichment
    sentiment: Optional[Sentiment] = None
    reliability: Optional[int] = None
    impact: Optional[Impact] = None

    def __post_init__(self) -> None:
        """Validate fields."""
        if not self.id:
            raise ValueError("id must be non-empty string")
        if not self.title:
            raise ValueError("title must be non-empty string")
        if self.published_at < 0:
            raise ValueError(f"published_at must be non-negative, got {self.published_at}")
        if self.reliability is not None and not (0 <= self.reliability <= 100):
            raise ValueError(
                f"reliability must be in range [0, 100], got {self.reliability}"
            )

    @property
    def is_enriched(self) -> bool:
        return (
            self.sentiment is not None
            and self.reliability is not None
            and self.impact is not None
        )

    def with_enrichment(
        self,
        sentiment: Sentiment,
        reliability: int,
        impact: Impact,
    ) -> NewsItem:
        return replace(
            self,
            sentiment=sentiment,
            reliability=reliability,
            impact=impact,
        )

    def carry_enrichment(self, previous: NewsItem) -> NewsItem:
        """Fill enrichment fields missing here from an earlier version of the same story."""
        if self.is_enriched or previous.id != self.id:
            return self
        return replace(
            self,
            sentiment=self.sentiment if self.sentiment is not None else previous.sentiment,
            reliability=self.reliability if self.reliability is not None else previous.reliability,
            impact=self.impact if self.impact is not None else previous.impact,
        )

    def to_dict(self) -> dict[str, Any]:
        """camelCase wire form handed to UI consumers."""
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "source": self.source,
            "imageUrl": self.image_url,
            "publishedAt": self.published_at,
            "sentiment": self.sentiment.value if self.sentiment else None,
            "reliability": self.reliability,
            "impact": self.impact.value if self.impact else None,
            "votes": (
                {"positive": self.votes.positive, "negative": self.votes.negative}
                if self.votes
                else None
            ),
        }
