"""Test doubles for the Gemini client and the rate limiter clock."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(
    text: str | None = None,
    block_reason: Any = None,
    finish_reason: Any = None,
) -> SimpleNamespace:
    """Builds an object shaped like google.genai's GenerateContentResponse."""
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    candidates = [SimpleNamespace(finish_reason=finish_reason)] if finish_reason else []
    return SimpleNamespace(text=text, prompt_feedback=feedback, candidates=candidates)


def make_client(response: Any = None, side_effect: Any = None) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=response, side_effect=side_effect
    )
    return client
