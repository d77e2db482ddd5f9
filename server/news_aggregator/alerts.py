"""
Keyword Alerts

Watches the reconciled feed for stories mentioning user keywords and, when
Telegram credentials are configured, pushes a short message per match.

Usage:
    alerts = KeywordAlerts(["etf", "sec"])
    for item in alerts.match(service.snapshot()):
        await notifier.send(format_alert(item))
"""
from __future__ import annotations

import html
import logging
from collections import OrderedDict
from typing import Iterable

import aiohttp

from news_aggregator.core.types import NewsAggregatorError
from news_aggregator.models.news import NewsItem

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
SEND_TIMEOUT_S = 10.0

# Alerted ids kept for once-per-story suppression; above the feed cap
MAX_REMEMBERED = 1000


class NotificationError(NewsAggregatorError):
    """Raised when an alert could not be delivered."""


class KeywordAlerts:
    """Case-insensitive keyword matcher that fires at most once per story."""

    def __init__(self, keywords: Iterable[str], *, max_remembered: int = MAX_REMEMBERED) -> None:
        if max_remembered < 1:
            raise ValueError("max_remembered must be at least 1")
        self._keywords = [k.strip().lower() for k in keywords if k and k.strip()]
        # Oldest alerted ids are forgotten first
        self._alerted: OrderedDict[str, None] = OrderedDict()
        self._max_remembered = max_remembered

    @property
    def keywords(self) -> list[str]:
        return list(self._keywords)

    def match(self, items: Iterable[NewsItem]) -> list[NewsItem]:
        if not self._keywords:
            return []

        hits: list[NewsItem] = []
        for item in items:
            if item.id in self._alerted:
                continue
            text = f"{item.title}\n{item.body}".lower()
            if any(keyword in text for keyword in self._keywords):
                self._remember(item.id)
                hits.append(item)
        return hits

    def _remember(self, news_id: str) -> None:
        self._alerted[news_id] = None
        while len(self._alerted) > self._max_remembered:
            self._alerted.popitem(last=False)


def format_alert(item: NewsItem) -> str:
    """HTML message body for one matched story."""
    lines = [f"<b>{html.escape(item.title)}</b>", html.escape(item.source)]
    if item.sentiment is not None:
        lines.append(f"Sentiment: {item.sentiment.value}")
    if item.url:
        lines.append(html.escape(item.url))
    return "\n".join(lines)


class TelegramNotifier:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        bot_token: str,
        chat_id: str,
        *,
        base_url: str = TELEGRAM_API_URL,
        timeout_s: float = SEND_TIMEOUT_S,
    ) -> None:
        if not bot_token or not chat_id:
            raise ValueError("bot_token and chat_id are required")
        self._session = session
        self._url = f"{base_url.rstrip('/')}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)

    async def send(self, text: str) -> None:
        """
        Deliver *text* to the configured chat.

        Raises NotificationError on a non-200 answer or a transport failure.
        """
        payload = {"chat_id": self._chat_id, "text": text, "parse_mode": "HTML"}
        try:
            async with self._session.post(self._url, json=payload, timeout=self._timeout) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise NotificationError(
                        f"Telegram sendMessage failed: {resp.status}",
                        context={"status": resp.status, "body": body[:200]},
                    )
        except aiohttp.ClientError as exc:
            raise NotificationError(f"Telegram request failed: {exc}") from exc
        logger.debug("Alert delivered", extra={"chat_id": self._chat_id})
