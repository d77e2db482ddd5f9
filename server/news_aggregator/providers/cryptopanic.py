"""
CryptoPanic adapter (provider B, curated "important" posts).
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from news_aggregator.models.news import NewsItem
from news_aggregator.providers.base import NewsProvider
from news_aggregator.providers.normalizer import normalize_cryptopanic


class CryptoPanicProvider(NewsProvider):
    name = "cryptopanic"
    default_url = "https://cryptopanic.com/api/v1/posts/"

    def request_params(self) -> dict[str, str]:
        return {"auth_token": self._api_key, "filter": "important"}

    def extract_records(self, payload: Any) -> Optional[list[Any]]:
        if not isinstance(payload, dict):
            return None
        results = payload.get("results")
        return results if isinstance(results, list) else None

    @property
    def normalizer(self) -> Callable[[dict[str, Any]], NewsItem]:
        return normalize_cryptopanic
