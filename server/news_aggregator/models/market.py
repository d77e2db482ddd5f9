"""
Market Data Models

Snapshot and price-history shapes served by the market data client.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TimeRange(str, Enum):
    """Chart range supported by the price history endpoint."""

    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @classmethod
    def from_string(cls, value: str) -> "TimeRange":
        """Convert string to TimeRange, defaulting to DAY."""
        for member in cls:
            if member.value == value:
                return member
        return cls.DAY

    @property
    def days(self) -> int:
        return {TimeRange.DAY: 1, TimeRange.WEEK: 7, TimeRange.MONTH: 30}[self]

    @property
    def interval(self) -> str:
        return "daily" if self.days > 1 else "hourly"


@dataclass(frozen=True)
class MarketSnapshot:
    """Current market statistics for one asset."""

    symbol: str
    price: float
    volume_24h: float
    market_cap: float
    dominance: float
    change_24h: float
    is_mock: bool = False


@dataclass(frozen=True)
class PricePoint:
    """One point of a price chart."""

    time: int
    price: float
    volume: float
