"""
Market Data

Snapshot and price-history client backed by CoinGecko.
"""
from news_aggregator.market.client import MarketDataClient

__all__ = ["MarketDataClient"]
