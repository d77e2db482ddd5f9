"""
Shared fakes for the news_aggregator tests.

HTTP goes through FakeSession, time through FakeClock, and every sleep is
recorded instead of awaited — no network and no wall-clock waits.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest

from news_aggregator.models.news import NewsItem


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse used as `async with`."""

    def __init__(self, status: int = 200, payload: Any = None, text: str = "") -> None:
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self, content_type: Optional[str] = None) -> Any:
        return self._payload

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


class FakeSession:
    """
    Routes requests by URL fragment.

    A route value may be a FakeResponse, an exception instance (raised when
    the request is made) or a list of either, consumed one per request.
    """

    def __init__(self, routes: Optional[dict[str, Any]] = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def _respond(self, method: str, url: str, kwargs: dict[str, Any]) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        for fragment, response in self.routes.items():
            if fragment not in url:
                continue
            if isinstance(response, list):
                response = response.pop(0) if len(response) > 1 else response[0]
            if isinstance(response, BaseException):
                raise response
            return response
        raise AssertionError(f"Unexpected request: {method} {url}")

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("POST", url, kwargs)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Records requested delays and optionally advances a FakeClock."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)
        await asyncio.sleep(0)


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def make_item() -> Callable[..., NewsItem]:
    """Factory for NewsItem with sensible defaults."""

    def _make(
        id: str = "n1",
        published_at: int = 1_700_000_000,
        title: str = "Bitcoin holds steady above support",
        body: str = "",
        source: str = "CryptoCompare - CoinDesk",
        **kwargs: Any,
    ) -> NewsItem:
        return NewsItem(
            id=id,
            published_at=published_at,
            title=title,
            body=body,
            url=kwargs.pop("url", f"https://example.com/{id}"),
            source=source,
            **kwargs,
        )

    return _make
