"""Tests for the in-memory and Redis-backed login throttles."""

from __future__ import annotations

import time

import fakeredis
import pytest
from redis.exceptions import ResponseError

from account_service.security.rate_limiter import SlidingWindowRateLimiter
from account_service.security.redis_rate_limiter import RedisSlidingWindowRateLimiter
from account_service.security import rate_limiter as memory_module


@pytest.fixture()
def redis_client() -> fakeredis.FakeStrictRedis:
    client = fakeredis.FakeStrictRedis()
    client.flushall()
    return client


def test_memory_limiter_blocks_excess_per_key():
    limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60)
    assert limiter.allow("login:a@b.com")
    assert limiter.allow("login:a@b.com")
    assert not limiter.allow("login:a@b.com")
    assert limiter.allow("login:c@d.com")
    assert 1 <= limiter.retry_after("login:a@b.com") <= 60
    assert limiter.retry_after("login:c@d.com") >= 1
    assert limiter.retry_after("login:unused") == 0


def test_memory_limiter_reset_clears_window():
    limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60)
    assert limiter.allow("login:a@b.com")
    assert not limiter.allow("login:a@b.com")
    limiter.reset("login:a@b.com")
    assert limiter.allow("login:a@b.com")


def test_redis_rate_limiter_allows_within_threshold(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=3, window_seconds=1, key_prefix="test"
    )
    key = "login:a@b.com"
    assert limiter.allow(key)
    assert limiter.allow(key)
    assert limiter.allow(key)


def test_redis_rate_limiter_blocks_excess(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=2, window_seconds=30, key_prefix="test"
    )
    key = "register:10.0.0.1"
    assert limiter.allow(key)
    assert limiter.allow(key)
    assert not limiter.allow(key)
    assert 1 <= limiter.retry_after(key) <= 30


def test_redis_rate_limiter_expires_entries(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=1, window_seconds=1, key_prefix="test"
    )
    key = "login:a@b.com"
    assert limiter.allow(key)
    assert not limiter.allow(key)
    time.sleep(1.1)
    assert limiter.allow(key)


def test_redis_rate_limiter_reset(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=1, window_seconds=60, key_prefix="test"
    )
    key = "login:a@b.com"
    assert limiter.allow(key)
    assert not limiter.allow(key)
    limiter.reset(key)
    assert limiter.retry_after(key) == 0
    assert limiter.allow(key)


def test_memory_limiter_drops_keys_once_their_window_passes(monkeypatch):
    now = [1_000.0]
    monkeypatch.setattr(memory_module.time, "time", lambda: now[0])
    limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60)

    for index in range(50):
        assert limiter.allow(f"login:user{index}@example.com")
    assert len(limiter) == 50

    now[0] += 61
    assert limiter.allow("login:fresh@example.com")
    assert set(limiter._attempts) == {"login:fresh@example.com"}


def test_memory_limiter_retry_after_does_not_record_unknown_keys():
    limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60)
    for index in range(10):
        assert limiter.retry_after(f"login:nobody{index}@example.com") == 0
    assert len(limiter) == 0


def _scriptless(limiter: RedisSlidingWindowRateLimiter, message: str) -> None:
    def refuse(*args, **kwargs):
        raise ResponseError(message)

    limiter._script = refuse


@pytest.mark.parametrize(
    "message",
    [
        "unknown command 'evalsha', with args beginning with: ",
        "ERR unknown command `evalsha`, with args beginning with: ",
        "ERR unknown command 'EVAL'",
    ],
)
def test_redis_rate_limiter_falls_back_when_scripting_is_missing(redis_client, message):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=2, window_seconds=30, key_prefix="test"
    )
    _scriptless(limiter, message)
    key = "login:a@b.com"
    assert limiter.allow(key)
    assert limiter.allow(key)
    assert not limiter.allow(key)
    assert 1 <= limiter.retry_after(key) <= 30
    limiter.reset(key)
    assert limiter.allow(key)


def test_redis_rate_limiter_reraises_other_script_errors(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=2, window_seconds=30, key_prefix="test"
    )
    _scriptless(limiter, "WRONGTYPE Operation against a key holding the wrong kind of value")
    with pytest.raises(ResponseError):
        limiter.allow("login:a@b.com")
