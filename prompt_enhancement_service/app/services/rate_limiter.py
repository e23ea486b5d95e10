# prompt_enhancement_service/app/services/rate_limiter.py
"""Per-client request governance for the model-backed endpoints."""

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..config import settings
from ..models import RateLimitDecision, RateLimitWindow

logger = logging.getLogger(__name__)


class RateLimiter(ABC):
    """Contract shared by in-process and shared-cache limiters."""

    @abstractmethod
    def check(self, client_key: str) -> RateLimitDecision:
        """Counts one request for client_key and reports whether it is over quota."""


class FixedWindowRateLimiter(RateLimiter):
    """
    Fixed window counter keyed by client identifier.

    Each client gets a window that starts with its first request. Up to
    max_requests are admitted inside the window; once the window is older than
    window_seconds it is replaced by a fresh one. Window edges allow up to twice
    the quota in a short burst, which is acceptable for abuse deterrence.
    """

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        prune_interval: int = 1000,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if prune_interval < 1:
            raise ValueError("prune_interval must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self.prune_interval = prune_interval
        self._checks_since_prune = 0
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def check(self, client_key: str) -> RateLimitDecision:
        # Lookup, compare and increment happen under one lock so concurrent
        # requests from the same client cannot undercount.
        with self._lock:
            now = self._clock()
            self._checks_since_prune += 1
            if self._checks_since_prune >= self.prune_interval:
                self._prune_locked(now)
            window = self._windows.get(client_key)

            if window is None or now - window.window_start > self.window_seconds:
                self._windows[client_key] = RateLimitWindow(
                    client_key=client_key, count=1, window_start=now
                )
                return RateLimitDecision(limited=False)

            if window.count >= self.max_requests:
                time_left = math.ceil(window.window_start + self.window_seconds - now)
                retry_after = max(time_left, 1)
                logger.warning(
                    f"Rate limit exceeded for client {client_key}: {window.count} requests "
                    f"in current window. Retry after {retry_after}s."
                )
                return RateLimitDecision(limited=True, retry_after_seconds=retry_after)

            window.count += 1
            return RateLimitDecision(limited=False)

    def prune_expired(self) -> int:
        """Drops windows that have already elapsed. Returns how many were removed."""
        with self._lock:
            return self._prune_locked(self._clock())

    def _prune_locked(self, now: float) -> int:
        # Caller holds self._lock
        self._checks_since_prune = 0
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.window_start > self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired rate limit windows.")
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def active_clients(self) -> int:
        with self._lock:
            return len(self._windows)


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Returns the process-wide limiter configured from settings."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            prune_interval=settings.RATE_LIMIT_PRUNE_INTERVAL,
        )
        logger.info(
            f"Rate limiter initialized: {settings.RATE_LIMIT_MAX_REQUESTS} requests "
            f"per {settings.RATE_LIMIT_WINDOW_SECONDS}s window."
        )
    return _rate_limiter


def format_rate_limit_message(decision: RateLimitDecision) -> str:
    if decision.retry_after_seconds:
        return f"Rate limit exceeded. Try again in {decision.retry_after_seconds} seconds."
    return "Rate limit exceeded. Please try again later."
