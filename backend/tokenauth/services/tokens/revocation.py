"""
Hybrid access-token revocation store.

Redis answers the hot-path question "is this access token revoked?"; the
``revoked_tokens`` and ``user_revocations`` tables keep a durable copy so the
answer survives a cache outage and the cache can be rebuilt after a flush.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from tokenauth.core.clock import as_utc, remaining_ms, to_epoch_ms, utcnow
from tokenauth.core.logger import sanitize_log_value
from tokenauth.services._shared.base import BaseService
from tokenauth.services._shared.ports import RevocationCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RevocationCounts:
    """Number of token-level and user-level entries touched by a bulk operation."""

    tokens: int
    users: int


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class RevocationStore(BaseService):
    """
    Token-level and user-level revocation of access tokens.

    Writes go to the database first, then to the cache (best effort). Reads
    use the cache, fall back to the database when Redis is unreachable, and
    answer "not revoked" when both are down.

    :param cache: Fast-path storage (Redis adapter in production).
    :param refresh_ttl_ms: Lifetime of user-level markers; equal to the
        refresh-token lifetime so a marker outlives every token issued before it.
    :param clock: Source of the current instant.
    """

    def __init__(
        self,
        *,
        cache: RevocationCache,
        refresh_ttl_ms: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__()
        self.cache = cache
        self.refresh_ttl_ms = int(refresh_ttl_ms)
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def blacklist_token(self, jti: str, expires_at: datetime) -> bool:
        """
        Block a single access token until it expires.

        :param jti: Identifier of the token to block.
        :param expires_at: The token's own expiry.
        :returns: ``False`` when the token had already expired (nothing stored).
        """
        now = self._clock()
        ttl_ms = remaining_ms(expires_at, now)
        if ttl_ms <= 0:
            return False

        with self.rw_uow() as uow:
            uow.revoked_tokens.add_if_absent(str(jti), as_utc(expires_at))

        try:
            self.cache.mark_token(str(jti), ttl_ms)
        except RedisError:
            logger.warning(
                "revocation.cache_write_failed",
                extra={"jti": sanitize_log_value(jti)},
                exc_info=True,
            )
        return True

    def revoke_all_for_user(self, user_id: uuid.UUID | str) -> datetime:
        """
        Revoke every access token issued to ``user_id`` before now.

        Repeated calls overwrite the marker; tokens issued afterwards are not
        affected.

        :returns: The revocation instant.
        """
        uid = _as_uuid(user_id)
        if uid is None:
            raise ValueError(f"Not a user id: {user_id!r}")
        now = self._clock()
        expires_at = now + timedelta(milliseconds=self.refresh_ttl_ms)

        with self.rw_uow() as uow:
            uow.user_revocations.upsert(uid, now, expires_at)

        try:
            self.cache.set_user_marker(str(uid), to_epoch_ms(now), self.refresh_ttl_ms)
        except RedisError:
            logger.warning(
                "revocation.cache_write_failed", extra={"user_id": str(uid)}, exc_info=True
            )
        return now

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def is_blacklisted(self, jti: str, user_id: uuid.UUID | str, issued_at: datetime) -> bool:
        """
        Whether an access token must be rejected despite a valid signature.

        True when the token's ``jti`` was revoked, or when the user has a
        logout-all marker ``T`` with ``issued_at < T`` (strictly).
        """
        try:
            return self._cached_answer(str(jti), str(user_id), issued_at)
        except RedisError:
            logger.warning(
                "revocation.cache_unavailable", extra={"jti": sanitize_log_value(jti)}
            )

        try:
            return self._durable_answer(str(jti), user_id, issued_at)
        except SQLAlchemyError:
            logger.error(
                "revocation.check_failed_open",
                extra={"jti": sanitize_log_value(jti)},
                exc_info=True,
            )
            return False

    def _cached_answer(self, jti: str, user_id: str, issued_at: datetime) -> bool:
        if self.cache.is_token_marked(jti):
            return True
        raw: str | None = None
        try:
            # A marker that is not UTF-8 fails inside the decoding client
            raw = self.cache.get_user_marker(user_id)
            if raw is None:
                return False
            revoked_at_ms = int(raw)
        except ValueError:
            logger.error(
                "revocation.corrupt_user_marker %s",
                sanitize_log_value(raw),
                extra={"user_id": sanitize_log_value(user_id)},
            )
            return False
        return to_epoch_ms(issued_at) < revoked_at_ms

    def _durable_answer(self, jti: str, user_id: uuid.UUID | str, issued_at: datetime) -> bool:
        now = self._clock()
        uid = _as_uuid(user_id)
        with self.ro_uow() as uow:
            if uow.revoked_tokens.is_revoked(jti, now):
                return True
            if uid is None:
                return False
            marker = uow.user_revocations.get_live(uid, now)
            if marker is None:
                return False
            revoked_at = marker.revoked_at
        return to_epoch_ms(issued_at) < to_epoch_ms(revoked_at)

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    def rehydrate_cache(self) -> RevocationCounts:
        """
        Copy every live durable entry back into the cache.

        Used after Redis lost its data. Redis errors propagate to the caller.
        """
        now = self._clock()
        with self.ro_uow() as uow:
            tokens = [(row.jti, row.expires_at) for row in uow.revoked_tokens.live(now)]
            users = [
                (row.user_id, row.revoked_at, row.expires_at)
                for row in uow.user_revocations.live(now)
            ]

        written_tokens = 0
        for jti, expires_at in tokens:
            ttl_ms = remaining_ms(expires_at, now)
            if ttl_ms > 0:
                self.cache.mark_token(jti, ttl_ms)
                written_tokens += 1

        written_users = 0
        for user_id, revoked_at, expires_at in users:
            ttl_ms = remaining_ms(expires_at, now)
            if ttl_ms > 0:
                self.cache.set_user_marker(str(user_id), to_epoch_ms(revoked_at), ttl_ms)
                written_users += 1

        logger.info(
            "revocation.cache_rehydrated tokens=%s users=%s", written_tokens, written_users
        )
        return RevocationCounts(tokens=written_tokens, users=written_users)

    def purge_expired(self) -> RevocationCounts:
        """Delete durable entries whose expiry has passed."""
        now = self._clock()
        with self.rw_uow() as uow:
            tokens = uow.revoked_tokens.purge_expired(now)
            users = uow.user_revocations.purge_expired(now)
        logger.info("revocation.purged tokens=%s users=%s", tokens, users)
        return RevocationCounts(tokens=tokens, users=users)
