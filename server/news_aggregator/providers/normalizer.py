"""
Provider Payload Normalizer

Transforms raw provider records into the canonical NewsItem.
"""
from __future__ import annotations

import hashlib
import logging
import math
from datetime import datetime, timezone
from typing import Any

from news_aggregator.core.types import ValidationError
from news_aggregator.models.news import NewsItem, Votes

logger = logging.getLogger(__name__)

# Maximum title length before truncation
MAX_TITLE_LENGTH = 280

# 9999-12-31T23:59:59Z, the last second datetime can represent
MAX_TIMESTAMP = 253_402_300_799


def parse_timestamp(ts: Any) -> int:
    """
    Parse a provider timestamp to epoch seconds.

    Accepts epoch seconds (int/float/numeric string), epoch milliseconds and
    ISO 8601 strings such as "2025-07-24T17:06:15.272Z".

    Raises:
        ValidationError: If the timestamp is missing or unparseable
    """
    if ts is None or ts == "":
        raise ValidationError("Timestamp is empty", field="published")

    if isinstance(ts, bool):
        raise ValidationError("Invalid timestamp type", field="published", value=ts)

    if isinstance(ts, (int, float)):
        try:
            value = float(ts)
        except OverflowError as e:
            raise ValidationError("Timestamp out of range", field="published", value=ts) from e
        if not math.isfinite(value):
            raise ValidationError("Timestamp out of range", field="published", value=ts)
        # Millisecond epochs are 13 digits
        if value > 1e12:
            value /= 1000.0
        if value < 0:
            raise ValidationError("Negative timestamp", field="published", value=ts)
        if value > MAX_TIMESTAMP:
            raise ValidationError("Timestamp out of range", field="published", value=ts)
        return int(value)

    if not isinstance(ts, str):
        raise ValidationError("Invalid timestamp type", field="published", value=ts)

    text = ts.strip()
    if text.lstrip("-").isdigit():
        try:
            number = int(text)
        except ValueError as e:
            raise ValidationError("Timestamp out of range", field="published", value=ts) from e
        return parse_timestamp(number)

    try:
        # Handle 'Z' suffix (Zulu time = UTC)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"

        dt = datetime.fromisoformat(text)

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)

        return int(dt.timestamp())

    except ValueError as e:
        raise ValidationError(
            f"Invalid timestamp format: {ts}",
            field="published",
            value=ts,
        ) from e


def clean_title(text: Any) -> str:
    if not isinstance(text, str):
        return ""
    text = " ".join(text.split())
    if len(text) <= MAX_TITLE_LENGTH:
        return text
    return text[:MAX_TITLE_LENGTH - 3].strip() + "..."


def stable_id(provider: str, url: str, title: str, source: str) -> str:
    """
    Derive an id for records that carry none.

    Hashes the URL, or title + source when there is no URL, so the same
    story keeps the same id across refresh cycles.
    """
    basis = url.strip() if url and url.strip() else f"{title.strip()}|{source.strip()}"
    digest = hashlib.sha1(basis.encode("utf-8")).hexdigest()[:16]
    return f"{provider}-{digest}"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def build_news_item(
    *,
    provider: str,
    raw_id: Any,
    title: Any,
    body: Any,
    url: Any,
    source: str,
    published: Any,
    image_url: Any = "",
    votes: Any = None,
) -> NewsItem:
    """
    Validate the common fields and assemble a NewsItem.

    Raises:
        ValidationError: If the title or timestamp is missing or invalid
    """
    title_text = clean_title(title)
    if not title_text:
        raise ValidationError("Missing or empty required field: title", field="title")

    published_at = parse_timestamp(published)
    url_text = _as_text(url).strip()

    item_id = _as_text(raw_id).strip()
    if not item_id:
        item_id = stable_id(provider, url_text, title_text, source)

    return NewsItem(
        id=item_id,
        published_at=published_at,
        title=title_text,
        body=_as_text(body).strip(),
        url=url_text,
        source=source,
        image_url=_as_text(image_url).strip(),
        votes=Votes.from_dict(votes),
    )


def normalize_cryptocompare(raw: dict[str, Any]) -> NewsItem:
    """CryptoCompare `Data[]` record → NewsItem."""
    _require_dict(raw)
    return build_news_item(
        provider="cryptocompare",
        raw_id=raw.get("id"),
        title=raw.get("title"),
        body=raw.get("body"),
        url=raw.get("url"),
        source=f"CryptoCompare - {_as_text(raw.get('source')) or 'unknown'}",
        published=raw.get("published_on"),
        image_url=raw.get("imageurl"),
    )


def normalize_cryptopanic(raw: dict[str, Any]) -> NewsItem:
    """CryptoPanic `results[]` record → NewsItem."""
    _require_dict(raw)
    source_info = raw.get("source")
    source_title = source_info.get("title") if isinstance(source_info, dict) else None
    metadata = raw.get("metadata") if isinstance(raw.get("metadata"), dict) else {}
    image = metadata.get("image") if isinstance(metadata.get("image"), dict) else {}

    return build_news_item(
        provider="cryptopanic",
        raw_id=raw.get("id"),
        title=raw.get("title"),
        body=metadata.get("description"),
        url=raw.get("url"),
        source=f"CryptoPanic - {_as_text(source_title) or 'unknown'}",
        published=raw.get("published_at"),
        image_url=image.get("url"),
        votes=raw.get("votes"),
    )


def normalize_coingecko(raw: dict[str, Any]) -> NewsItem:
    """CoinGecko news record → NewsItem."""
    _require_dict(raw)
    return build_news_item(
        provider="coingecko",
        raw_id=raw.get("id"),
        title=raw.get("title"),
        body=raw.get("description"),
        url=raw.get("url"),
        source=f"CoinGecko - {_as_text(raw.get('author') or raw.get('news_site')) or 'unknown'}",
        published=raw.get("created_at") or raw.get("updated_at"),
        image_url=raw.get("thumb_2x"),
    )


def _require_dict(raw: Any) -> None:
    if not isinstance(raw, dict):
        raise ValidationError(
            f"Expected dict, got {type(raw).__name__}",
            field="record",
            value=raw,
        )
