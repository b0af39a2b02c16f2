from __future__ import annotations

import dataclasses

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import RedisError

from clubevents.middleware import rate_limit
from clubevents.middleware.rate_limit import parse_rate
from tests.test_auth_rbac import auth_headers, dev_token


class CountingRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key: str, ttl: int) -> None:
        self.ttls[key] = ttl


class BrokenRedis:
    def incr(self, key: str) -> int:
        raise RedisError("connection refused")


def _limit(monkeypatch, redis_client, rate: str = "2/minute") -> None:
    monkeypatch.setattr(
        rate_limit,
        "settings",
        dataclasses.replace(rate_limit.settings, rate_limit_enabled=True, rate_limit_default=rate),
    )
    monkeypatch.setattr(rate_limit, "get_redis", lambda: redis_client)


def test_parse_rate():
    assert parse_rate("30/minute") == (30, 60)
    assert parse_rate(" 5/SEC ") == (5, 1)
    with pytest.raises(ValueError):
        parse_rate("30")
    with pytest.raises(ValueError):
        parse_rate("30/fortnight")


def test_writes_are_rate_limited_per_caller(client: TestClient, monkeypatch):
    fake = CountingRedis()
    _limit(monkeypatch, fake)
    headers = auth_headers(dev_token("busy@example.com"))

    first = client.post("/v1/auth/sign-in", headers=headers)
    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"

    client.post("/v1/auth/sign-in", headers=headers)
    blocked = client.post("/v1/auth/sign-in", headers=headers)
    assert blocked.status_code == 429
    assert blocked.json()["detail"]["code"] == "RATE_LIMITED"
    assert "Retry-After" in blocked.headers

    # A different credential has its own budget; reads are never limited
    other = client.post("/v1/auth/sign-in", headers=auth_headers(dev_token("calm@example.com")))
    assert other.status_code == 200
    assert client.get("/v1/me", headers=headers).status_code == 200
    assert set(fake.ttls.values()) == {60}


def test_rate_limiter_fails_open(client: TestClient, monkeypatch):
    _limit(monkeypatch, BrokenRedis())
    resp = client.post("/v1/auth/sign-in", headers=auth_headers(dev_token("open@example.com")))
    assert resp.status_code == 200
    assert "X-RateLimit-Limit" not in resp.headers


def test_security_and_request_id_headers(client: TestClient):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "Cache-Control" not in resp.headers

    me = client.get("/v1/me")
    assert me.headers["Cache-Control"] == "no-store"
    assert me.headers["X-Request-ID"]


def test_metrics_endpoint_is_exposed(client: TestClient):
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
