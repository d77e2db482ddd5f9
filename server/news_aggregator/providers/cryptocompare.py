"""
CryptoCompare news adapter (provider A, trusted).
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from news_aggregator.models.news import NewsItem
from news_aggregator.providers.base import NewsProvider
from news_aggregator.providers.normalizer import normalize_cryptocompare


class CryptoCompareProvider(NewsProvider):
    name = "cryptocompare"
    trusted = True
    default_url = "https://min-api.cryptocompare.com/data/v2/news/"

    def request_params(self) -> dict[str, str]:
        params = {"lang": "EN"}
        if self._api_key:
            params["api_key"] = self._api_key
        return params

    def request_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Apikey {self._api_key}"
        return headers

    def extract_records(self, payload: Any) -> Optional[list[Any]]:
        if not isinstance(payload, dict):
            return None
        data = payload.get("Data")
        return data if isinstance(data, list) else None

    @property
    def normalizer(self) -> Callable[[dict[str, Any]], NewsItem]:
        return normalize_cryptocompare
