from __future__ import annotations

import hashlib
from datetime import datetime, timezone

import structlog
from redis.exceptions import RedisError

from clubevents.core.config import settings
from clubevents.redis_client import get_redis

logger = structlog.get_logger(__name__)


def _key(raw_token: str) -> str:
    return "revoked:" + hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _ttl_seconds(expires_at: datetime | None) -> int:
    if expires_at is None:
        return settings.token_revocation_default_ttl_seconds
    remaining = int((expires_at - datetime.now(timezone.utc)).total_seconds())
    return max(1, remaining)


def revoke_token(raw_token: str, expires_at: datetime | None = None) -> bool:
    if not settings.token_revocation_enabled:
        return False
    try:
        get_redis().setex(_key(raw_token), _ttl_seconds(expires_at), "1")
    except RedisError:
        logger.warning("token_revocation_unavailable", operation="revoke")
        return False
    return True


def is_token_revoked(raw_token: str) -> bool:
    if not settings.token_revocation_enabled:
        return False
    try:
        return bool(get_redis().exists(_key(raw_token)))
    except RedisError:
        # Fail open: an unavailable deny-list must not lock every user out
        logger.warning("token_revocation_unavailable", operation="check")
        return False
