"""
Feed Export

Writes a feed snapshot as the JSON document the dashboard downloads.

Document format:
  [
    {
      "title": "...",
      "source": "CryptoCompare - CoinDesk",
      "published": "2024-03-01T12:00:00+00:00",
      "sentiment": "POSITIVE",
      "reliability": 87,
      "impact": "High"
    }
  ]
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from news_aggregator.core.types import NewsAggregatorError
from news_aggregator.models.news import NewsItem

logger = logging.getLogger(__name__)


class ExportError(NewsAggregatorError):
    """Raised when a snapshot cannot be serialized or written."""


def _export_record(item: NewsItem) -> dict[str, Any]:
    return {
        "title": item.title,
        "source": item.source,
        "published": datetime.fromtimestamp(item.published_at, tz=timezone.utc).isoformat(),
        "sentiment": item.sentiment.value if item.sentiment else None,
        "reliability": item.reliability,
        "impact": item.impact.value if item.impact else None,
    }


def export_snapshot(items: Iterable[NewsItem]) -> str:
    """
    Encode *items* as an indented JSON array.

    Raises ExportError if encoding fails.
    """
    try:
        return json.dumps([_export_record(item) for item in items], indent=2, default=str)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ExportError(f"Failed to serialize feed export: {exc}") from exc


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"crypto-news-{now.astimezone(timezone.utc).strftime('%Y-%m-%dT%H-%M-%SZ')}.json"


def write_export(
    items: Iterable[NewsItem],
    directory: str | Path,
    now: Optional[datetime] = None,
) -> Path:
    """
    Write the export document into *directory* and return its path.

    Raises ExportError if the directory cannot be created or written.
    """
    document = export_snapshot(items)
    target = Path(directory) / export_filename(now)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document, encoding="utf-8")
    except OSError as exc:
        raise ExportError(
            f"Failed to write feed export: {exc}",
            context={"path": str(target)},
        ) from exc
    logger.info(f"Exported feed snapshot to {target}")
    return target
