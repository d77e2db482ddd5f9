"""
Sentiment Prompt Templates

The system prompt pins the output to a single label so the completion can
be capped at a few tokens.
"""
from __future__ import annotations

PROMPT_VERSION = "v1"

SYSTEM_PROMPT = (
    "You are a sentiment analyzer. Analyze the following text and respond "
    "with exactly one word: POSITIVE, NEUTRAL, or NEGATIVE."
)

MAX_TEXT_LENGTH = 500


def build_user_prompt(text: str) -> str:
    """Trim the text; latency scales with token count."""
    text = text.strip()
    if len(text) > MAX_TEXT_LENGTH:
        text = text[:MAX_TEXT_LENGTH] + "…"
    return text
