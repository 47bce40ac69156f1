# tests/unit/tokens/test_refresh_token_registry.py
from __future__ import annotations

import threading
import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory
from tests.helpers.tokens import HASH_SECRET, ManualClock, make_settings
from tests.helpers.assertions import not_raises
from tokenauth.core.extensions import db as _db
from tokenauth.infra.redis.redis_refresh_token_cache import RedisRefreshTokenCache
from tokenauth.infra.security.token_hasher import HmacTokenHasher
from tokenauth.models.refresh_token import RefreshToken
from tokenauth.models.user import User
from tokenauth.repositories.refresh_token import RefreshTokenRepository
from tokenauth.services._shared.errors import InvalidTokenError, TokenErrorCode
from tokenauth.services.tokens import (
    IssuedToken,
    RefreshTokenRegistry,
    TokenCodec,
    TokenSubject,
)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


def _registry(client, clock) -> RefreshTokenRegistry:
    return RefreshTokenRegistry(
        codec=TokenCodec(make_settings(), clock=clock),
        cache=RedisRefreshTokenCache(client),
        hasher=HmacTokenHasher(HASH_SECRET),
        clock=clock,
    )


@pytest.fixture()
def registry(redis_client, clock) -> RefreshTokenRegistry:
    return _registry(redis_client, clock)


@pytest.fixture()
def subject() -> TokenSubject:
    user = UserFactory()
    return TokenSubject(user_id=user.id, email=user.email)


def _record(session, jti) -> RefreshToken:
    session.expire_all()
    return session.get(RefreshToken, uuid.UUID(str(jti)))


# --------------------------- Issue / record -------------------------------- #
def test_issue_records_hashed_token_and_caches_it(registry, subject, session, redis_client):
    issued = registry.issue_for(subject, device_info="pytest-agent", ip_address="10.0.0.1")

    rec = _record(session, issued.jti)
    assert rec is not None
    assert rec.user_id == subject.user_id
    assert rec.revoked is False
    assert rec.token_hash == HmacTokenHasher(HASH_SECRET).digest(issued.token)
    assert rec.token_hash != issued.token
    assert (rec.device_info, rec.ip_address) == ("pytest-agent", "10.0.0.1")
    assert redis_client.get(f"jwt:rt:{issued.jti}") == str(subject.user_id)


def test_client_context_is_clipped_to_column_sizes(registry, subject, session):
    issued = registry.issue_for(subject, device_info="a" * 400, ip_address="f" * 60)

    rec = _record(session, issued.jti)
    assert len(rec.device_info) == 255
    assert len(rec.ip_address) == 45


def test_issue_survives_cache_outage(subject, session, down_redis, clock):
    registry = _registry(down_redis, clock)
    issued = registry.issue_for(subject)

    assert _record(session, issued.jti) is not None
    # Database answers when the cache cannot
    assert registry.is_valid(issued.jti) is True


# --------------------------- Validation ------------------------------------ #
def test_cache_miss_falls_back_to_database_and_heals(registry, subject, redis_client):
    issued = registry.issue_for(subject)
    redis_client.flushall()

    assert registry.is_valid(issued.jti) is True
    assert redis_client.exists(f"jwt:rt:{issued.jti}") == 1


def test_unknown_and_malformed_ids_are_invalid(registry):
    assert registry.is_valid(str(uuid.uuid4())) is False
    assert registry.is_valid("not-a-uuid") is False


def test_expired_record_is_invalid(registry, subject, clock, redis_client):
    issued = registry.issue_for(subject)
    redis_client.flushall()
    clock.advance(seconds=3601)

    assert registry.is_valid(issued.jti) is False
    assert redis_client.exists(f"jwt:rt:{issued.jti}") == 0


def test_revoked_record_is_invalid_even_without_cache(registry, subject, redis_client):
    rec = RefreshTokenFactory(user_id=subject.user_id, revoked=True)
    redis_client.flushall()
    assert registry.is_valid(str(rec.id)) is False


def test_heal_cache_skips_expired_records(registry, subject, clock):
    assert registry.heal_cache(str(uuid.uuid4()), subject.user_id, clock.now) is False


# --------------------------- Revocation ------------------------------------ #
def test_revoke_flips_flag_once(registry, subject, session, redis_client):
    issued = registry.issue_for(subject)

    assert registry.revoke(issued.jti) is True
    assert registry.revoke(issued.jti) is False
    assert _record(session, issued.jti).revoked is True
    assert redis_client.exists(f"jwt:rt:{issued.jti}") == 0
    assert registry.is_valid(issued.jti) is False


def test_revoke_unknown_jti(registry):
    with not_raises(InvalidTokenError):
        assert registry.revoke(str(uuid.uuid4())) is False

    with pytest.raises(InvalidTokenError) as exc:
        registry.revoke(str(uuid.uuid4()), missing_ok=False)
    assert exc.value.error_code is TokenErrorCode.INVALID_SIGNATURE


def test_revoke_all_for_user_only_touches_that_user(registry, subject, session):
    first = registry.issue_for(subject)
    second = registry.issue_for(subject)
    other_user = UserFactory()
    other = registry.issue_for(TokenSubject(user_id=other_user.id, email=other_user.email))

    assert registry.revoke_all_for_user(subject.user_id) == 2
    assert registry.revoke_all_for_user(subject.user_id) == 0

    assert registry.is_valid(first.jti) is False
    assert registry.is_valid(second.jti) is False
    assert registry.is_valid(other.jti) is True


# --------------------------- Rotation -------------------------------------- #
def test_rotate_replaces_old_record(registry, subject, session, redis_client):
    old = registry.issue_for(subject)
    new = registry.rotate(old.jti, subject, device_info="rotated")

    assert new.jti != old.jti
    assert _record(session, old.jti).revoked is True
    assert _record(session, new.jti).device_info == "rotated"
    assert registry.is_valid(new.jti) is True
    assert redis_client.exists(f"jwt:rt:{old.jti}") == 0


def test_rotate_twice_reports_reuse(registry, subject):
    old = registry.issue_for(subject)
    registry.rotate(old.jti, subject)

    with pytest.raises(InvalidTokenError) as exc:
        registry.rotate(old.jti, subject)
    assert exc.value.error_code is TokenErrorCode.INVALID_SIGNATURE
    assert exc.value.message == "Refresh token already used"


def test_rotate_unknown_record(registry, subject):
    with pytest.raises(InvalidTokenError) as exc:
        registry.rotate(str(uuid.uuid4()), subject)
    assert exc.value.message == "Refresh token not found"


def test_rotate_rejects_malformed_id(registry, subject):
    with pytest.raises(InvalidTokenError) as exc:
        registry.rotate("nope", subject)
    assert exc.value.error_code is TokenErrorCode.MALFORMED


def test_failed_rotation_records_nothing(registry, subject, session):
    old = registry.issue_for(subject)
    registry.revoke(old.jti)
    before = session.query(RefreshToken).count()

    with pytest.raises(InvalidTokenError):
        registry.rotate(old.jti, subject)
    assert session.query(RefreshToken).count() == before


# --------------------------- Concurrency ----------------------------------- #
@pytest.fixture()
def file_session(tmp_path, monkeypatch):
    """
    Point the app's session at a file-backed SQLite database threads can share.

    Transactions open with ``BEGIN IMMEDIATE`` so a second writer waits for
    the first to commit, the way a row lock makes it wait on PostgreSQL.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rotation.db'}",
        connect_args={"timeout": 15, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _manual_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    _db.metadata.create_all(engine)
    scoped = scoped_session(sessionmaker(bind=engine))
    monkeypatch.setattr(_db, "session", scoped)
    try:
        yield scoped
    finally:
        scoped.remove()
        engine.dispose()


def test_concurrent_rotations_have_exactly_one_winner(
    file_session, redis_client, clock, monkeypatch
):
    user_id = uuid.uuid4()
    file_session.add(
        User(
            id=user_id,
            email="racer@example.com",
            password_hash="x",
            first_name="Ada",
            last_name="Racer",
        )
    )
    file_session.commit()
    subject = TokenSubject(user_id=user_id, email="racer@example.com")

    registry = _registry(redis_client, clock)
    old = registry.issue_for(subject)
    file_session.remove()

    # Both rotations reach the compare-and-set together
    start = threading.Barrier(2)
    real_revoke = RefreshTokenRepository.revoke_if_active

    def _lined_up(self, jti):
        start.wait(timeout=10)
        return real_revoke(self, jti)

    monkeypatch.setattr(RefreshTokenRepository, "revoke_if_active", _lined_up)

    outcomes: list = []

    def _rotate():
        try:
            outcomes.append(registry.rotate(old.jti, subject))
        except Exception as exc:
            outcomes.append(exc)
        finally:
            file_session.remove()

    threads = [threading.Thread(target=_rotate) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    winners = [o for o in outcomes if isinstance(o, IssuedToken)]
    losers = [o for o in outcomes if isinstance(o, InvalidTokenError)]
    assert len(winners) == 1, outcomes
    assert len(losers) == 1, outcomes
    assert losers[0].error_code is TokenErrorCode.INVALID_SIGNATURE
    assert losers[0].message == "Refresh token already used"

    rows = {str(r.id): r.revoked for r in file_session.query(RefreshToken).all()}
    assert rows == {old.jti: True, winners[0].jti: False}
