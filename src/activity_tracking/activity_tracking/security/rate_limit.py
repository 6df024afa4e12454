"""Per-IP rate limiting of the authentication endpoints."""
from __future__ import annotations

import logging
import math
import time
from typing import Iterable, Optional

from flask import Flask, jsonify, request
from limits import RateLimitItemPerMinute
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter

logger = logging.getLogger(__name__)

RATE_LIMITED_PATHS = ("/api/auth/login", "/api/auth/refresh")


def client_ip() -> str:
    # Behind Cloudflare the real client address is only in this header.
    forwarded = (request.headers.get("CF-Connecting-IP") or "").strip()
    return forwarded or (request.remote_addr or "unknown")


class LoginRateLimiter:
    """Allows ``capacity`` requests per client IP every ``refill_minutes``."""

    def __init__(
        self,
        *,
        capacity: int = 5,
        refill_minutes: int = 1,
        paths: Iterable[str] = RATE_LIMITED_PATHS,
        storage: Optional[Storage] = None,
    ):
        self._item = RateLimitItemPerMinute(int(capacity), int(refill_minutes))
        self._limiter = MovingWindowRateLimiter(storage or MemoryStorage())
        self._paths = frozenset(paths)

    def applies_to(self, path: str) -> bool:
        return path in self._paths

    def try_acquire(self, key: str) -> bool:
        return self._limiter.hit(self._item, key)

    def retry_after_seconds(self, key: str) -> int:
        stats = self._limiter.get_window_stats(self._item, key)
        return max(1, math.ceil(stats.reset_time - time.time()))

    def init_app(self, app: Flask) -> None:
        @app.before_request
        def enforce_rate_limit():
            if request.method == "OPTIONS" or not self.applies_to(request.path):
                return None
            key = client_ip()
            if self.try_acquire(key):
                return None

            retry_after = self.retry_after_seconds(key)
            logger.warning("Rate limit exceeded for %s on %s", key, request.path)
            response = jsonify(
                {
                    "error": "Too Many Requests",
                    "message": "Rate limit exceeded. Please try again later.",
                }
            )
            response.status_code = 429
            response.headers["Retry-After"] = str(retry_after)
            return response
