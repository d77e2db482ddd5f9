"""
Provider Adapters

One adapter per upstream news source, all sharing the NewsProvider contract.
"""
from news_aggregator.providers.base import NewsProvider
from news_aggregator.providers.coingecko import CoinGeckoNewsProvider
from news_aggregator.providers.cryptocompare import CryptoCompareProvider
from news_aggregator.providers.cryptopanic import CryptoPanicProvider
from news_aggregator.providers.normalizer import parse_timestamp, stable_id

__all__ = [
    "CoinGeckoNewsProvider",
    "CryptoCompareProvider",
    "CryptoPanicProvider",
    "NewsProvider",
    "parse_timestamp",
    "stable_id",
]
