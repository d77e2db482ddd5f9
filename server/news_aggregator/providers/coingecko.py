"""
CoinGecko news adapter. Optional; enabled with COINGECKO_NEWS_ENABLED.

The endpoint answers with either a bare list or {"data": [...]}.
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from news_aggregator.models.news import NewsItem
from news_aggregator.providers.base import NewsProvider
from news_aggregator.providers.normalizer import normalize_coingecko


class CoinGeckoNewsProvider(NewsProvider):
    name = "coingecko"
    default_url = "https://api.coingecko.com/api/v3/news"

    def request_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["x-cg-demo-api-key"] = self._api_key
        return headers

    def extract_records(self, payload: Any) -> Optional[list[Any]]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            return payload["data"]
        return None

    @property
    def normalizer(self) -> Callable[[dict[str, Any]], NewsItem]:
        return normalize_coingecko
