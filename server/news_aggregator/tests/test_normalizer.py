"""
Tests for news_aggregator.providers.normalizer
"""
from datetime import datetime, timezone

import pytest

from news_aggregator.core.types import ValidationError
from news_aggregator.models.news import Votes
from news_aggregator.providers.normalizer import (
    MAX_TITLE_LENGTH,
    normalize_coingecko,
    normalize_cryptocompare,
    normalize_cryptopanic,
    parse_timestamp,
    stable_id,
)


# ── parse_timestamp ───────────────────────────────────────────────────────────

def test_parse_epoch_seconds():
    assert parse_timestamp(1_700_000_000) == 1_700_000_000


def test_parse_epoch_milliseconds():
    assert parse_timestamp(1_700_000_000_123) == 1_700_000_000


def test_parse_numeric_string():
    assert parse_timestamp("1700000000") == 1_700_000_000


def test_parse_iso_with_zulu_suffix():
    expected = int(datetime(2025, 7, 24, 17, 6, 15, tzinfo=timezone.utc).timestamp())
    assert parse_timestamp("2025-07-24T17:06:15.272Z") == expected


def test_parse_naive_iso_is_utc():
    expected = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())
    assert parse_timestamp("2024-01-01T00:00:00") == expected


@pytest.mark.parametrize("bad", [None, "", "yesterday", True, [1]])
def test_parse_rejects_garbage(bad):
    with pytest.raises(ValidationError) as exc_info:
        parse_timestamp(bad)
    assert exc_info.value.field == "published"


@pytest.mark.parametrize(
    "huge",
    ["9" * 400, 10 ** 400, float("inf"), float("nan"), 10 ** 18, "9" * 5000],
)
def test_parse_rejects_out_of_range_numbers(huge):
    with pytest.raises(ValidationError, match="out of range"):
        parse_timestamp(huge)


# ── stable_id ─────────────────────────────────────────────────────────────────

def test_stable_id_is_deterministic():
    a = stable_id("coingecko", "https://x.io/a", "Title", "Src")
    b = stable_id("coingecko", "https://x.io/a", "Other title", "Other")
    assert a == b
    assert a.startswith("coingecko-")


def test_stable_id_without_url_uses_title_and_source():
    a = stable_id("coingecko", "", "Title", "Src")
    b = stable_id("coingecko", "", "Title", "Other")
    assert a != b


# ── normalize_cryptocompare ───────────────────────────────────────────────────

def test_normalize_cryptocompare_record():
    item = normalize_cryptocompare({
        "id": "123",
        "title": "  Bitcoin   ETF sees inflows ",
        "body": "Long body",
        "url": "https://cc.com/123",
        "source": "CoinDesk",
        "published_on": 1_700_000_000,
        "imageurl": "https://cc.com/img.png",
    })

    assert item.id == "123"
    assert item.title == "Bitcoin ETF sees inflows"
    assert item.source == "CryptoCompare - CoinDesk"
    assert item.published_at == 1_700_000_000
    assert item.image_url == "https://cc.com/img.png"
    assert item.sentiment is None


def test_normalize_cryptocompare_missing_title_raises():
    with pytest.raises(ValidationError, match="title"):
        normalize_cryptocompare({"id": "1", "published_on": 1_700_000_000})


def test_long_titles_are_truncated():
    item = normalize_cryptocompare({
        "id": "1",
        "title": "x" * 400,
        "published_on": 1_700_000_000,
    })
    assert len(item.title) == MAX_TITLE_LENGTH
    assert item.title.endswith("...")


# ── normalize_cryptopanic ─────────────────────────────────────────────────────

def test_normalize_cryptopanic_record():
    item = normalize_cryptopanic({
        "id": 987,
        "title": "SEC delays decision",
        "url": "https://cryptopanic.com/news/987",
        "published_at": "2024-03-01T12:00:00Z",
        "source": {"title": "The Block"},
        "metadata": {"description": "Details", "image": {"url": "https://img/1.png"}},
        "votes": {"positive": 4, "negative": 2},
    })

    assert item.id == "987"
    assert item.source == "CryptoPanic - The Block"
    assert item.body == "Details"
    assert item.image_url == "https://img/1.png"
    assert item.votes == Votes(positive=4, negative=2)


def test_normalize_cryptopanic_tolerates_missing_metadata():
    item = normalize_cryptopanic({
        "id": 1,
        "title": "Headline",
        "published_at": "2024-03-01T12:00:00Z",
    })
    assert item.body == ""
    assert item.source == "CryptoPanic - unknown"
    assert item.votes is None


def test_normalize_rejects_non_dict():
    with pytest.raises(ValidationError):
        normalize_cryptopanic(["not", "a", "record"])


# ── normalize_coingecko ───────────────────────────────────────────────────────

def test_normalize_coingecko_synthesizes_id():
    record = {
        "title": "Ethereum upgrade ships",
        "description": "Desc",
        "url": "https://news.site/eth",
        "news_site": "Decrypt",
        "created_at": 1_700_000_000,
        "thumb_2x": "https://thumb",
    }
    first = normalize_coingecko(record)
    second = normalize_coingecko(dict(record))

    assert first.id.startswith("coingecko-")
    assert first.id == second.id
    assert first.source == "CoinGecko - Decrypt"
    assert first.image_url == "https://thumb"
