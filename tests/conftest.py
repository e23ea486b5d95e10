"""Shared fixtures for the prompt enhancement service tests."""

from __future__ import annotations

import pytest

from helpers import FakeClock
from prompt_enhancement_service.app import genai_client as genai_client_module
from prompt_enhancement_service.app.config import settings
from prompt_enhancement_service.app.services import rate_limiter as rate_limiter_module
from prompt_enhancement_service.app.services.rate_limiter import FixedWindowRateLimiter


@pytest.fixture(autouse=True)
def service_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Configure a key, no retry delay and fresh singletons for every test."""

    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "LLM_MAX_ATTEMPTS", 1)
    monkeypatch.setattr(settings, "LLM_RETRY_BACKOFF_SECONDS", 0.0)
    monkeypatch.setattr(settings, "LLM_TIMEOUT_SECONDS", 5.0)
    monkeypatch.setattr(rate_limiter_module, "_rate_limiter", None)
    monkeypatch.setattr(genai_client_module, "_genai_client", None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=5, window_seconds=60, clock=clock)
