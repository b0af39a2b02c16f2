from __future__ import annotations

import hashlib
import time

from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from clubevents.core.config import settings
from clubevents.redis_client import get_redis

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_WINDOWS = {
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate(rate: str) -> tuple[int, int]:
    """Parse ``"30/minute"`` style rates into ``(limit, window_seconds)``."""
    raw = rate.strip().lower()
    limit_str, sep, window_str = raw.partition("/")
    if not sep:
        raise ValueError(f"Invalid rate format: {rate}")

    window = _WINDOWS.get(window_str.strip())
    if window is None:
        raise ValueError(f"Invalid rate window: {window_str}")
    return int(limit_str), window


def caller_key(request: Request) -> str:
    # Signed-in callers share one budget across IPs; others are keyed by IP
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        digest = hashlib.sha256(auth.removeprefix("Bearer ").strip().encode("utf-8")).hexdigest()
        return f"tok:{digest[:32]}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limit on writes. Reads are never limited."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if not settings.rate_limit_enabled or request.method not in WRITE_METHODS:
            return await call_next(request)

        path = request.url.path
        if path in set(settings.rate_limit_exempt_paths):
            return await call_next(request)

        try:
            limit, window_seconds = parse_rate(settings.rate_limit_default)
        except ValueError:
            return await call_next(request)

        now = int(time.time())
        bucket = now // window_seconds
        reset = (bucket + 1) * window_seconds
        key = f"rl:{caller_key(request)}:{window_seconds}:{bucket}"

        try:
            r = get_redis()
            count = int(r.incr(key))
            if count == 1:
                r.expire(key, window_seconds)
        except RedisError:
            # Fail open: the limiter must not take the API down with it
            return await call_next(request)

        if count > limit:
            return JSONResponse(
                status_code=429,
                content={"detail": {"code": "RATE_LIMITED", "message": "rate limit exceeded"}},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset),
                    "Retry-After": str(max(0, reset - now)),
                },
            )

        response = await call_next(request)
        response.headers.setdefault("X-RateLimit-Limit", str(limit))
        response.headers.setdefault("X-RateLimit-Remaining", str(max(0, limit - count)))
        response.headers.setdefault("X-RateLimit-Reset", str(reset))
        return response
