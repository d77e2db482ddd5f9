"""
Tests for news_aggregator.sentiment.groq_client

AsyncGroq is patched; no requests leave the process.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from groq import APITimeoutError, RateLimitError

from news_aggregator.sentiment.groq_client import MAX_TOKENS, GroqClassificationError, GroqClient

REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def create():
    """Patch AsyncGroq and yield its chat.completions.create mock."""
    with patch("groq.AsyncGroq") as mock_cls:
        instance = MagicMock()
        instance.chat.completions.create = AsyncMock(return_value=_completion(" POSITIVE \n"))
        mock_cls.return_value = instance
        yield instance.chat.completions.create


async def test_complete_returns_stripped_text(create):
    client = GroqClient(api_key="gsk_test")

    assert await client.complete("system", "user") == "POSITIVE"

    kwargs = create.call_args.kwargs
    assert kwargs["max_completion_tokens"] == MAX_TOKENS
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["messages"][1] == {"role": "user", "content": "user"}


async def test_timeout_is_retried_once(create):
    create.side_effect = [APITimeoutError(request=REQUEST), _completion("NEGATIVE")]
    client = GroqClient(api_key="gsk_test")

    assert await client.complete("s", "u") == "NEGATIVE"
    assert create.await_count == 2


async def test_repeated_timeouts_raise(create):
    create.side_effect = APITimeoutError(request=REQUEST)
    client = GroqClient(api_key="gsk_test")

    with pytest.raises(GroqClassificationError, match="after 2 attempts"):
        await client.complete("s", "u")


async def test_rate_limit_is_not_retried(create):
    response = httpx.Response(429, request=REQUEST)
    create.side_effect = RateLimitError("slow down", response=response, body=None)
    client = GroqClient(api_key="gsk_test")

    with pytest.raises(GroqClassificationError, match="rate limited"):
        await client.complete("s", "u")
    assert create.await_count == 1


async def test_empty_completion_raises(create):
    create.return_value = _completion("")
    client = GroqClient(api_key="gsk_test")

    with pytest.raises(GroqClassificationError, match="Empty"):
        await client.complete("s", "u")
