"""
crypto news aggregator — top-level orchestrator

Runs the news and market pollers in a single async event loop:
  - news: providers → aggregator → sentiment enrichment → reconciled feed
  - market: CoinGecko snapshot + price history for one symbol
  - alerts: keyword matches pushed to Telegram (when configured)
  - export: JSON snapshot written after every news cycle (--export DIR)

Usage:
    cd server
    python main.py                      # live providers, poll until Ctrl-C
    python main.py --mock               # mock news + mock classifier
    python main.py --once --export out  # one cycle, write out/crypto-news-*.json
    python main.py --symbol ethereum --range 7d
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional

import aiohttp
from dotenv import load_dotenv

from news_aggregator.alerts import KeywordAlerts, NotificationError, TelegramNotifier, format_alert
from news_aggregator.config import Settings, load_settings
from news_aggregator.core.types import FeedTimeoutError
from news_aggregator.export import ExportError, write_export
from news_aggregator.feed import FeedService
from news_aggregator.models.market import MarketSnapshot, PricePoint, TimeRange
from news_aggregator.models.news import NewsItem
from news_aggregator.scheduler import RefreshScheduler
from news_aggregator.views import compute_metrics

logger = logging.getLogger("news_aggregator")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s — %(message)s",
    )


async def run(
    settings: Settings,
    *,
    use_mock: bool = False,
    once: bool = False,
    export_dir: Optional[str] = None,
    symbol: Optional[str] = None,
    time_range: TimeRange = TimeRange.DAY,
) -> None:
    symbol = symbol or settings.market.default_symbol

    async with aiohttp.ClientSession() as session:
        service = FeedService.from_settings(settings, session, use_mock=use_mock)

        # ── Alerts ─────────────────────────────────────────────────
        alerts = KeywordAlerts(settings.telegram.keywords)
        notifier: Optional[TelegramNotifier] = None
        if settings.telegram.enabled and alerts.keywords:
            notifier = TelegramNotifier(
                session, settings.telegram.bot_token, settings.telegram.chat_id
            )
            logger.info(f"Telegram alerts on for: {', '.join(alerts.keywords)}")

        # ── Callbacks ──────────────────────────────────────────────

        async def on_news(items: list[NewsItem]) -> None:
            metrics = compute_metrics(items)
            logger.info(
                f"Feed: {metrics.total} stories | sentiment {metrics.sentiment_score}/10 "
                f"| reliability {metrics.reliability}% | signal {metrics.signal.value}"
            )
            for item in items[:3]:
                impact = item.impact.value if item.impact else "-"
                sentiment = item.sentiment.value if item.sentiment else "-"
                logger.info(f"  [{sentiment}/{impact}] {item.title[:70]}")

            if export_dir:
                try:
                    write_export(items, export_dir)
                except ExportError as e:
                    logger.error(f"Export failed: {e}")

            for item in alerts.match(items):
                if notifier is None:
                    logger.info(f"[ALERT] {item.title[:70]}")
                    continue
                try:
                    await notifier.send(format_alert(item))
                except NotificationError as e:
                    logger.warning(f"Alert delivery failed: {e}", extra={"news_id": item.id})

        async def on_market(result: tuple[MarketSnapshot, list[PricePoint]]) -> None:
            snapshot, history = result
            mock_tag = " (mock)" if snapshot.is_mock else ""
            logger.info(
                f"{snapshot.symbol}{mock_tag}: ${snapshot.price:,.2f} "
                f"({snapshot.change_24h:+.2f}% 24h) | {len(history)} points over {time_range.value}"
            )

        async def on_error(exc: Exception, retry_in: Optional[float]) -> None:
            if retry_in is None:
                logger.error(f"Refresh failed, waiting for next interval: {exc}")
            else:
                logger.warning(f"Refresh failed, retrying in {retry_in:.0f}s: {exc}")

        # ── Single cycle ───────────────────────────────────────────
        if once:
            try:
                items = await service.fetch_feed()
            except FeedTimeoutError as e:
                logger.error(f"News refresh failed: {e}")
                items = []
            await on_news(items)
            await on_market(await service.fetch_market(symbol, time_range))
            return

        # ── Pollers ────────────────────────────────────────────────
        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown_event.set)

        news_poller: RefreshScheduler[list[NewsItem]] = RefreshScheduler(
            "news",
            service.fetch_feed,
            interval_s=settings.scheduler.news_interval_s,
            on_result=on_news,
            on_error=on_error,
        )
        market_poller: RefreshScheduler[tuple[MarketSnapshot, list[PricePoint]]] = RefreshScheduler(
            "market",
            lambda token: service.fetch_market(symbol, time_range),
            interval_s=settings.scheduler.market_interval_s,
            on_result=on_market,
            on_error=on_error,
        )

        mode = "mock" if use_mock else "live"
        logger.info(
            f"Starting crypto news aggregator ({mode}), tracking {symbol} — "
            f"providers: {', '.join(p.name for p in service.providers)}"
        )

        async with news_poller, market_poller:
            await shutdown_event.wait()
            logger.info("Shutting down...")

        # in-flight cycles still hold the session
        await asyncio.gather(news_poller.wait_idle(), market_poller.wait_idle())

        logger.info(
            f"Final — news cycles: {news_poller.get_stats()['settled']}, "
            f"market cycles: {market_poller.get_stats()['settled']}, "
            f"stories in feed: {len(service.snapshot())}"
        )


if __name__ == "__main__":
    load_dotenv(".env")

    parser = argparse.ArgumentParser(description="crypto news aggregator")
    parser.add_argument("--mock", action="store_true", help="Use mock news and a mock classifier")
    parser.add_argument("--once", action="store_true", help="Run a single refresh cycle and exit")
    parser.add_argument("--export", metavar="DIR", help="Write a JSON export after every news cycle")
    parser.add_argument("--symbol", help="CoinGecko coin id for market data (default: MARKET_SYMBOL)")
    parser.add_argument(
        "--range",
        choices=[r.value for r in TimeRange],
        default=TimeRange.DAY.value,
        help="Price history range",
    )
    args = parser.parse_args()

    settings = load_settings()
    _configure_logging(settings.log_level)
    asyncio.run(
        run(
            settings,
            use_mock=args.mock,
            once=args.once,
            export_dir=args.export,
            symbol=args.symbol,
            time_range=TimeRange.from_string(args.range),
        )
    )
