"""
Groq API Client

Thin async wrapper around the Groq Python SDK. Enforces a hard timeout,
retries once on timeouts and 5xx, and returns the raw completion text.
Rate-limit responses are not retried: callers fall back immediately.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

MODEL = "llama-3.1-8b-instant"
MAX_RETRIES = 1
TIMEOUT_S = 5.0
TEMPERATURE = 0.1
MAX_TOKENS = 3


class GroqClassificationError(Exception):
    """Raised when Groq fails to return a completion."""

    pass


class GroqClient:
    """
    Async Groq chat-completion client.

    Create once per pipeline and reuse across calls.
    Reads GROQ_API_KEY from the environment when api_key is not given.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = MODEL,
        timeout_s: float = TIMEOUT_S,
    ) -> None:
        from groq import AsyncGroq

        self._client = AsyncGroq(api_key=api_key or None)
        self._model = model
        self._timeout_s = timeout_s

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> str:
        """
        Send a chat completion and return the stripped message text.

        Raises GroqClassificationError on rate limiting, permanent failure
        or an empty completion.
        """
        from groq import (
            APIConnectionError,
            APIStatusError,
            APITimeoutError,
            RateLimitError,
        )

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        last_error: Exception | None = None

        for attempt in range(1 + MAX_RETRIES):
            try:
                t0 = time.monotonic()

                completion = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    temperature=TEMPERATURE,
                    max_completion_tokens=MAX_TOKENS,
                    top_p=1,
                    stream=False,
                    timeout=self._timeout_s,
                )

                elapsed_ms = (time.monotonic() - t0) * 1000
                raw = completion.choices[0].message.content

                if not raw:
                    raise GroqClassificationError("Empty response from Groq")

                logger.debug(f"Groq completion in {elapsed_ms:.0f}ms: {raw!r}")
                return raw.strip()

            except RateLimitError as e:
                raise GroqClassificationError(f"Groq rate limited: {e}") from e
            except (APITimeoutError, APIConnectionError) as e:
                last_error = e
                if attempt < MAX_RETRIES:
                    logger.warning(
                        f"Groq transient error (attempt {attempt + 1}), retrying: {e}"
                    )
                    continue
            except APIStatusError as e:
                if e.status_code >= 500 and attempt < MAX_RETRIES:
                    last_error = e
                    logger.warning(
                        f"Groq 5xx error (attempt {attempt + 1}), retrying: {e}"
                    )
                    continue
                raise GroqClassificationError(
                    f"Groq API error {e.status_code}: {e}"
                ) from e

        raise GroqClassificationError(
            f"Groq failed after {1 + MAX_RETRIES} attempts: {last_error}"
        )
