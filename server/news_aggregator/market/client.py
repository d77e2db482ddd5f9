"""
CoinGecko Market Data Client

Market snapshot and price history for the dashboard charts. Both calls are
cached, rate-limited and non-raising: a 429, a malformed payload, a timeout
or any other failure is answered with the stale cached value or with mock
data, and that answer is cached too.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from news_aggregator.cache import TTLCache
from news_aggregator.core.types import RateLimitedError, UpstreamError
from news_aggregator.mock_data import MockDataGenerator, ResourceKind
from news_aggregator.models.market import MarketSnapshot, PricePoint, TimeRange
from news_aggregator.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
REQUEST_TIMEOUT_S = 5.0

# simple/price has no dominance field; a second call is not worth the quota.
FIXED_DOMINANCE = 45.5


class MarketDataClient:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        snapshot_cache: TTLCache[str, MarketSnapshot],
        history_cache: TTLCache[tuple[str, str], list[PricePoint]],
        rate_limiter: RateLimiter,
        *,
        base_url: str = COINGECKO_BASE_URL,
        api_key: str = "",
        timeout_s: float = REQUEST_TIMEOUT_S,
        mock: Optional[MockDataGenerator] = None,
    ) -> None:
        self._session = session
        self._snapshot_cache = snapshot_cache
        self._history_cache = history_cache
        self._rate_limiter = rate_limiter
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._mock = mock or MockDataGenerator()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["x-cg-demo-api-key"] = self._api_key
        return headers

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        await self._rate_limiter.acquire()
        async with self._session.get(
            f"{self._base_url}{path}",
            params=params,
            headers=self._headers(),
            timeout=self._timeout,
        ) as resp:
            if resp.status == 429:
                raise RateLimitedError(service="coingecko")
            if resp.status != 200:
                raise UpstreamError(
                    f"CoinGecko API error: {resp.status}",
                    service="coingecko",
                    status=resp.status,
                )
            return await resp.json(content_type=None)

    # ── Snapshot ─────────────────────────────────────────────────────────────

    async def fetch_market_snapshot(self, symbol: str = "bitcoin") -> MarketSnapshot:
        cached = self._snapshot_cache.get(symbol)
        if cached is not None:
            return cached

        mock = self._mock.generate(ResourceKind.MARKET_SNAPSHOT, symbol=symbol)
        params = {
            "ids": symbol,
            "vs_currencies": "usd",
            "include_market_cap": "true",
            "include_24hr_vol": "true",
            "include_24hr_change": "true",
            "include_last_updated_at": "true",
        }

        try:
            data = await self._get_json("/simple/price", params)
        except RateLimitedError:
            logger.warning("Rate limit reached, using fallback market data")
            return self._store_snapshot(symbol, mock)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error fetching market data: {e}", extra={"symbol": symbol})
            stale = self._snapshot_cache.get_stale(symbol)
            if stale is not None:
                return stale
            return self._store_snapshot(symbol, mock)

        coin = data.get(symbol) if isinstance(data, dict) else None
        if not isinstance(coin, dict):
            logger.warning("Invalid market data format, using fallback data", extra={"symbol": symbol})
            return self._store_snapshot(symbol, mock)

        snapshot = MarketSnapshot(
            symbol=symbol,
            price=_positive(coin.get("usd"), mock.price),
            volume_24h=_positive(coin.get("usd_24h_vol"), mock.volume_24h),
            market_cap=_positive(coin.get("usd_market_cap"), mock.market_cap),
            dominance=FIXED_DOMINANCE,
            change_24h=_number(coin.get("usd_24h_change"), mock.change_24h),
        )
        return self._store_snapshot(symbol, snapshot)

    def _store_snapshot(self, symbol: str, snapshot: MarketSnapshot) -> MarketSnapshot:
        self._snapshot_cache.put(symbol, snapshot)
        return snapshot

    # ── Price history ────────────────────────────────────────────────────────

    async def fetch_price_history(
        self,
        symbol: str = "bitcoin",
        time_range: TimeRange | str = TimeRange.DAY,
    ) -> list[PricePoint]:
        time_range = TimeRange.from_string(time_range)
        key = (symbol, time_range.value)

        cached = self._history_cache.get(key)
        if cached is not None:
            return cached

        mock = self._mock.generate(ResourceKind.PRICE_HISTORY, time_range=time_range)
        params = {
            "vs_currency": "usd",
            "days": str(time_range.days),
            "interval": time_range.interval,
        }

        try:
            data = await self._get_json(f"/coins/{symbol}/market_chart", params)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Error fetching price history, using cached or mock data: {e}",
                extra={"symbol": symbol, "range": time_range.value},
            )
            return self._store_history(key, self._history_cache.get_stale(key) or mock)

        prices = data.get("prices") if isinstance(data, dict) else None
        if not isinstance(prices, list):
            logger.warning(
                "Invalid price history data format, using fallback data",
                extra={"symbol": symbol, "range": time_range.value},
            )
            return self._store_history(key, self._history_cache.get_stale(key) or mock)

        volumes = data.get("total_volumes")
        volumes = volumes if isinstance(volumes, list) else []
        history = [
            _to_point(raw, index, volumes, mock) for index, raw in enumerate(prices)
        ]
        return self._store_history(key, history)

    def _store_history(
        self,
        key: tuple[str, str],
        history: list[PricePoint],
    ) -> list[PricePoint]:
        self._history_cache.put(key, history)
        return history


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def _positive(value: Any, default: float) -> float:
    number = _number(value, default)
    return number if number > 0 else default


def _to_point(
    raw: Any,
    index: int,
    volumes: list[Any],
    mock: list[PricePoint],
) -> PricePoint:
    """[ms_timestamp, price] → PricePoint; invalid points take the mock point at that index."""
    fallback = mock[index] if index < len(mock) else mock[0]
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return fallback

    timestamp, price = raw[0], raw[1]
    valid_ts = isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool) and timestamp > 0
    valid_price = isinstance(price, (int, float)) and not isinstance(price, bool) and price > 0
    if not (valid_ts and valid_price):
        return fallback

    volume: Optional[float] = None
    if index < len(volumes):
        entry = volumes[index]
        if isinstance(entry, (list, tuple)) and len(entry) >= 2:
            volume = _positive(entry[1], 0.0) or None

    return PricePoint(
        time=int(timestamp // 1000),
        price=float(price),
        volume=volume if volume is not None else fallback.volume,
    )
