from __future__ import annotations

import logging
import time

from django.conf import settings
from django.core.cache import cache

from .api import error_response

logger = logging.getLogger(__name__)


def parse_rate(rate: str):
    """``"100/60"`` -> ``(100, 60)``: requests allowed per window of seconds."""
    requests, seconds = rate.split("/")
    return int(requests), int(seconds)


def client_ip(request) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("HTTP_X_REAL_IP") or request.META.get("REMOTE_ADDR", "unknown")


class RateLimitMiddleware:
    """Fixed-window request counter per client IP for ``/api/`` paths."""

    prefix = "/api/"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith(self.prefix):
            limited = self.check(request)
            if limited is not None:
                return limited
        return self.get_response(request)

    def check(self, request):
        limit, window = parse_rate(getattr(settings, "RATE_LIMIT_API", "100/60"))
        now = int(time.time())
        window_start = now - now % window
        ip = client_ip(request)
        key = f"ratelimit:{ip}:{window_start}"

        cache.add(key, 0, timeout=window)
        try:
            count = cache.incr(key)
        except ValueError:
            # Expired between add() and incr().
            cache.set(key, 1, timeout=window)
            count = 1
        if count <= limit:
            return None

        retry_after = max(window_start + window - now, 1)
        logger.warning("Rate limit exceeded for %s on %s", ip, request.path)
        response = error_response(429, "RATE_LIMITED", "Too many requests. Please try again later.")
        response["Retry-After"] = str(retry_after)
        return response
