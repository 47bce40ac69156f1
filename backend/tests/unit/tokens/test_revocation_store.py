# tests/unit/tokens/test_revocation_store.py
from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from tests.factories.user import UserFactory
from tests.helpers.tokens import REFRESH_TTL_MS, ManualClock
from tokenauth.core.clock import to_epoch_ms
from tokenauth.infra.redis.redis_revocation_cache import RedisRevocationCache
from tokenauth.models.revocation import RevokedToken, UserRevocation
from tokenauth.repositories.revocation import RevokedTokenRepository
from tokenauth.services.tokens import RevocationStore


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def store(redis_client, clock) -> RevocationStore:
    return RevocationStore(
        cache=RedisRevocationCache(redis_client), refresh_ttl_ms=REFRESH_TTL_MS, clock=clock
    )


@pytest.fixture()
def offline_store(down_redis, clock) -> RevocationStore:
    return RevocationStore(
        cache=RedisRevocationCache(down_redis), refresh_ttl_ms=REFRESH_TTL_MS, clock=clock
    )


# --------------------------- Token level ----------------------------------- #
def test_blacklisted_token_is_reported(store, redis_client, session, clock):
    jti = str(uuid.uuid4())
    assert store.blacklist_token(jti, clock.now + timedelta(minutes=5)) is True

    assert store.is_blacklisted(jti, uuid.uuid4(), clock.now) is True
    assert redis_client.get(f"jwt:bl:token:{jti}") == "revoked"
    assert 0 < redis_client.pttl(f"jwt:bl:token:{jti}") <= 300_000
    assert session.get(RevokedToken, jti) is not None


def test_other_tokens_are_not_affected(store, clock):
    store.blacklist_token(str(uuid.uuid4()), clock.now + timedelta(minutes=5))
    assert store.is_blacklisted(str(uuid.uuid4()), uuid.uuid4(), clock.now) is False


def test_already_expired_token_is_not_stored(store, redis_client, session, clock):
    jti = str(uuid.uuid4())
    assert store.blacklist_token(jti, clock.now) is False
    assert store.blacklist_token(jti, clock.now - timedelta(seconds=1)) is False

    assert redis_client.exists(f"jwt:bl:token:{jti}") == 0
    assert session.get(RevokedToken, jti) is None


def test_blacklisting_twice_is_harmless(store, clock):
    jti = str(uuid.uuid4())
    store.blacklist_token(jti, clock.now + timedelta(minutes=5))
    store.blacklist_token(jti, clock.now + timedelta(minutes=5))
    assert store.is_blacklisted(jti, uuid.uuid4(), clock.now) is True


# --------------------------- User level ------------------------------------ #
def test_user_marker_boundary_is_strict(store, clock):
    user = UserFactory()
    revoked_at = store.revoke_all_for_user(user.id)

    assert store.is_blacklisted("x", user.id, revoked_at - timedelta(milliseconds=1)) is True
    assert store.is_blacklisted("x", user.id, revoked_at) is False
    assert store.is_blacklisted("x", user.id, revoked_at + timedelta(milliseconds=1)) is False


def test_user_marker_value_and_ttl(store, redis_client, clock):
    user = UserFactory()
    revoked_at = store.revoke_all_for_user(user.id)

    key = f"jwt:bl:user:{user.id}"
    assert int(redis_client.get(key)) == to_epoch_ms(revoked_at)
    assert 0 < redis_client.pttl(key) <= REFRESH_TTL_MS


def test_repeated_logout_all_moves_the_marker(store, clock):
    user = UserFactory()
    first = store.revoke_all_for_user(user.id)
    issued_between = clock.advance(seconds=10)
    clock.advance(seconds=10)
    store.revoke_all_for_user(user.id)

    assert store.is_blacklisted("x", user.id, issued_between) is True
    assert store.is_blacklisted("x", user.id, first - timedelta(seconds=1)) is True


def test_marker_does_not_leak_to_other_users(store, clock):
    user, other = UserFactory(), UserFactory()
    store.revoke_all_for_user(user.id)
    assert store.is_blacklisted("x", other.id, clock.now - timedelta(hours=1)) is False


def test_corrupt_marker_fails_open(store, redis_client, clock, caplog):
    user_id = uuid.uuid4()
    redis_client.set(f"jwt:bl:user:{user_id}", "not-a-timestamp")

    with caplog.at_level("ERROR"):
        assert store.is_blacklisted("x", user_id, clock.now - timedelta(days=1)) is False
    assert "corrupt_user_marker" in caplog.text


def test_undecodable_marker_fails_open(store, redis_client, clock, caplog):
    user_id = uuid.uuid4()
    redis_client.set(f"jwt:bl:user:{user_id}", b"\xff\xfe\x00")

    with caplog.at_level("ERROR"):
        assert store.is_blacklisted("x", user_id, clock.now - timedelta(days=1)) is False
    assert "corrupt_user_marker" in caplog.text


# --------------------------- Degraded cache -------------------------------- #
def test_durable_mirror_answers_when_cache_is_down(offline_store, session, clock):
    jti = str(uuid.uuid4())
    assert offline_store.blacklist_token(jti, clock.now + timedelta(minutes=5)) is True

    assert session.get(RevokedToken, jti) is not None
    assert offline_store.is_blacklisted(jti, uuid.uuid4(), clock.now) is True


def test_user_marker_survives_cache_outage(offline_store, session, clock):
    user = UserFactory()
    revoked_at = offline_store.revoke_all_for_user(user.id)

    assert session.get(UserRevocation, user.id) is not None
    assert offline_store.is_blacklisted("x", user.id, revoked_at - timedelta(seconds=1)) is True
    assert offline_store.is_blacklisted("x", user.id, revoked_at) is False


def test_cache_and_database_down_fails_open(offline_store, monkeypatch, clock):
    def _boom(self, jti, now):
        raise OperationalError("SELECT 1", {}, Exception("database is gone"))

    monkeypatch.setattr(RevokedTokenRepository, "is_revoked", _boom)
    assert offline_store.is_blacklisted(str(uuid.uuid4()), uuid.uuid4(), clock.now) is False


# --------------------------- Maintenance ----------------------------------- #
def test_rehydrate_restores_entries_after_flush(store, redis_client, clock):
    user = UserFactory()
    jti = str(uuid.uuid4())
    store.blacklist_token(jti, clock.now + timedelta(minutes=5))
    revoked_at = store.revoke_all_for_user(user.id)

    redis_client.flushall()
    counts = store.rehydrate_cache()

    assert (counts.tokens, counts.users) == (1, 1)
    assert store.is_blacklisted(jti, uuid.uuid4(), clock.now) is True
    assert store.is_blacklisted("x", user.id, revoked_at - timedelta(seconds=1)) is True


def test_purge_drops_only_expired_rows(store, session, clock):
    short, long_lived = str(uuid.uuid4()), str(uuid.uuid4())
    store.blacklist_token(short, clock.now + timedelta(seconds=1))
    store.blacklist_token(long_lived, clock.now + timedelta(hours=1))

    clock.advance(seconds=2)
    counts = store.purge_expired()

    assert counts.tokens == 1
    assert session.get(RevokedToken, short) is None
    assert session.get(RevokedToken, long_lived) is not None
