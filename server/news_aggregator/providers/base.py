"""
Provider Adapter Base

Each adapter performs one HTTP call to its upstream, normalizes the payload
into NewsItems and isolates its own failures: whatever goes wrong, fetch()
returns a (possibly empty) list instead of raising.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import aiohttp

from news_aggregator.core.types import RateLimitedError, UpstreamError, ValidationError
from news_aggregator.models.news import NewsItem

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 8.0


class NewsProvider(ABC):
    """
    One upstream news source.

    Subclasses supply the request (url / params / headers), the location of
    the record array in the payload, and the record normalizer.
    """

    #: Short provider slug used in logs and synthesized ids
    name: str = "provider"

    #: Trusted providers get a reliability bonus during enrichment
    trusted: bool = False

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        api_key: str = "",
        base_url: Optional[str] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._base_url = base_url or self.default_url
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)

        # Stats
        self._fetches = 0
        self._failures = 0
        self._records_skipped = 0

    # ── Subclass hooks ───────────────────────────────────────────────────────

    default_url: str = ""

    def request_params(self) -> dict[str, str]:
        return {}

    def request_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    @abstractmethod
    def extract_records(self, payload: Any) -> Optional[list[Any]]:
        """Return the record array, or None when the payload is malformed."""

    @property
    @abstractmethod
    def normalizer(self) -> Callable[[dict[str, Any]], NewsItem]:
        """Record → NewsItem function."""

    # ── Fetch ────────────────────────────────────────────────────────────────

    async def fetch(self) -> list[NewsItem]:
        """
        Fetch and normalize this provider's latest news.

        Never raises for upstream problems; task cancellation still propagates
        so the aggregator's timeout can abort the request.
        """
        self._fetches += 1
        try:
            payload = await self._get_json()
        except RateLimitedError as e:
            self._failures += 1
            logger.warning(f"{self.name} rate limited, contributing no items", extra={"error": str(e)})
            return []
        except UpstreamError as e:
            self._failures += 1
            logger.warning(f"{self.name} API error: {e}", extra={"provider": self.name})
            return []
        except Exception as e:
            self._failures += 1
            logger.warning(
                f"{self.name} request failed: {e}",
                extra={"provider": self.name, "error": str(e)},
            )
            return []

        records = self.extract_records(payload)
        if records is None:
            self._failures += 1
            logger.warning(
                f"{self.name} returned a malformed payload",
                extra={"provider": self.name},
            )
            return []

        return self._normalize_all(records)

    async def _get_json(self) -> Any:
        async with self._session.get(
            self._base_url,
            params=self.request_params(),
            headers=self.request_headers(),
            timeout=self._timeout,
        ) as resp:
            if resp.status == 429:
                raise RateLimitedError(service=self.name)
            if resp.status != 200:
                raise UpstreamError(
                    f"{self.name} API error: {resp.status}",
                    service=self.name,
                    status=resp.status,
                )
            return await resp.json(content_type=None)

    def _normalize_all(self, records: list[Any]) -> list[NewsItem]:
        items: list[NewsItem] = []
        for raw in records:
            try:
                items.append(self.normalizer(raw))
            except ValidationError as e:
                self._records_skipped += 1
                logger.debug(
                    "Skipping invalid record",
                    extra={"provider": self.name, "error": str(e), "field": e.field},
                )
            except Exception as e:
                self._records_skipped += 1
                logger.debug(
                    f"Skipping unreadable record: {type(e).__name__}",
                    extra={"provider": self.name, "error": str(e)},
                )
        return items

    def get_stats(self) -> dict[str, Any]:
        return {
            "provider": self.name,
            "fetches": self._fetches,
            "failures": self._failures,
            "records_skipped": self._records_skipped,
        }
