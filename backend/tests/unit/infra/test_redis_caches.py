"""
Unit tests for the Redis adapters using fakeredis.

These tests exercise the key layout and TTL handling of:
- RedisRevocationCache (token and user markers)
- RedisRefreshTokenCache (liveness keys)
"""

from __future__ import annotations

import fakeredis
import pytest

from tokenauth.infra.redis.redis_refresh_token_cache import RedisRefreshTokenCache
from tokenauth.infra.redis.redis_revocation_cache import RedisRevocationCache


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    return fakeredis.FakeRedis(decode_responses=True)


# ------------------------------ Revocation -------------------------------- #
def test_mark_token_sets_value_and_ttl(fake_redis):
    cache = RedisRevocationCache(fake_redis)
    cache.mark_token("abc", 60_000)

    assert fake_redis.get("jwt:bl:token:abc") == "revoked"
    assert 0 < fake_redis.pttl("jwt:bl:token:abc") <= 60_000
    assert cache.is_token_marked("abc") is True
    assert cache.is_token_marked("other") is False


def test_mark_token_keeps_first_ttl(fake_redis):
    cache = RedisRevocationCache(fake_redis)
    cache.mark_token("abc", 60_000)
    cache.mark_token("abc", 600_000)

    assert fake_redis.pttl("jwt:bl:token:abc") <= 60_000


def test_user_marker_is_overwritten(fake_redis):
    cache = RedisRevocationCache(fake_redis)
    cache.set_user_marker("u1", 1_000, 3_600_000)
    cache.set_user_marker("u1", 2_000, 3_600_000)

    assert cache.get_user_marker("u1") == "2000"
    assert cache.get_user_marker("u2") is None


def test_user_marker_accepts_byte_responses():
    cache = RedisRevocationCache(fakeredis.FakeRedis())
    cache.set_user_marker("u1", 1_234, 60_000)
    assert cache.get_user_marker("u1") == "1234"


# ------------------------------ Refresh tokens ---------------------------- #
def test_put_contains_discard(fake_redis):
    cache = RedisRefreshTokenCache(fake_redis)
    cache.put("j1", "user-1", 60_000)
    cache.put("j2", "user-1", 60_000)

    assert fake_redis.get("jwt:rt:j1") == "user-1"
    assert cache.contains("j1") is True
    assert cache.discard(["j1", "j2", "missing"]) == 2
    assert cache.contains("j1") is False


def test_put_skips_non_positive_ttl(fake_redis):
    cache = RedisRefreshTokenCache(fake_redis)
    cache.put("j1", "user-1", 0)
    assert cache.contains("j1") is False


def test_discard_nothing(fake_redis):
    assert RedisRefreshTokenCache(fake_redis).discard([]) == 0
