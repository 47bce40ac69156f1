"""
Durable registry of issued refresh tokens with a Redis liveness cache.

The ``refresh_tokens`` table is authoritative. ``jwt:rt:{jti}`` keys only
short-circuit :meth:`RefreshTokenRegistry.is_valid`; losing them costs a
database read, never a wrong answer.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime

from redis.exceptions import RedisError

from tokenauth.core.clock import as_utc, remaining_ms, utcnow
from tokenauth.infra.security.token_hasher import HmacTokenHasher
from tokenauth.models.refresh_token import RefreshToken
from tokenauth.services._shared.base import BaseService
from tokenauth.services._shared.errors import InvalidTokenError, TokenErrorCode
from tokenauth.services._shared.ports import RefreshTokenCache
from tokenauth.services.tokens.codec import TokenCodec
from tokenauth.services.tokens.dto import IssuedToken, TokenKind, TokenSubject
from tokenauth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

logger = logging.getLogger(__name__)


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _clip(value: str | None, length: int) -> str | None:
    return value[:length] if value else None


class RefreshTokenRegistry(BaseService):
    """
    Issue, validate, revoke and rotate refresh tokens.

    :param codec: Signs the refresh tokens this registry records.
    :param cache: Liveness cache (Redis adapter in production).
    :param hasher: Keyed digest; only the digest of a raw token is stored.
    :param clock: Source of the current instant.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        cache: RefreshTokenCache,
        hasher: HmacTokenHasher,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__()
        self.codec = codec
        self.cache = cache
        self.hasher = hasher
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Recording
    # ------------------------------------------------------------------ #

    def record(
        self,
        jti: str,
        user_id: uuid.UUID,
        token_hash: str,
        expires_at: datetime,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> None:
        """Insert a non-revoked record, then cache its liveness."""
        with self.rw_uow() as uow:
            self._insert(uow, jti, user_id, token_hash, expires_at, device_info, ip_address)
        self.heal_cache(jti, user_id, expires_at)

    def issue_for(
        self,
        subject: TokenSubject,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> IssuedToken:
        """
        Sign a refresh token for ``subject`` and record it.

        :returns: The issued token; its record exists before this returns.
        """
        issued = self.codec.issue_token(TokenKind.REFRESH, subject.user_id, subject.email)
        self.record(
            issued.jti,
            subject.user_id,
            self.hasher.digest(issued.token),
            issued.expires_at,
            device_info=device_info,
            ip_address=ip_address,
        )
        return issued

    @staticmethod
    def _insert(
        uow: SQLAlchemyUnitOfWork,
        jti: str,
        user_id: uuid.UUID,
        token_hash: str,
        expires_at: datetime,
        device_info: str | None,
        ip_address: str | None,
    ) -> None:
        uow.refresh_tokens.add(
            RefreshToken(
                id=uuid.UUID(str(jti)),
                user_id=user_id,
                token_hash=token_hash,
                expires_at=as_utc(expires_at),
                revoked=False,
                device_info=_clip(device_info, 255),
                ip_address=_clip(ip_address, 45),
            )
        )

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def is_valid(self, jti: str) -> bool:
        """
        Whether ``jti`` names an issued, unrevoked, unexpired refresh token.

        Cache hit answers immediately. On a miss (or a cache error) the
        database decides, and a live record is written back through
        :meth:`heal_cache`.
        """
        try:
            if self.cache.contains(str(jti)):
                return True
        except RedisError:
            logger.warning("refresh_registry.cache_unavailable", extra={"jti": str(jti)})

        token_id = _as_uuid(jti)
        if token_id is None:
            return False

        with self.ro_uow() as uow:
            rec = uow.refresh_tokens.get(token_id)
            if rec is None:
                return False
            revoked, user_id, expires_at = rec.revoked, rec.user_id, rec.expires_at

        if revoked or remaining_ms(expires_at, self._clock()) <= 0:
            return False

        self.heal_cache(str(jti), user_id, expires_at)
        return True

    def heal_cache(self, jti: str, user_id: uuid.UUID, expires_at: datetime) -> bool:
        """
        Write the liveness key for a record known to be live.

        :returns: ``False`` when the cache could not be written.
        """
        ttl_ms = remaining_ms(expires_at, self._clock())
        if ttl_ms <= 0:
            return False
        try:
            self.cache.put(str(jti), str(user_id), ttl_ms)
        except RedisError:
            logger.warning("refresh_registry.cache_write_failed", extra={"jti": str(jti)})
            return False
        return True

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke(self, jti: str, *, missing_ok: bool = True) -> bool:
        """
        Mark a record revoked.

        :param missing_ok: When false an unknown ``jti`` raises.
        :returns: ``True`` when this call flipped the flag.
        :raises InvalidTokenError: ``INVALID_SIGNATURE`` for an unknown
            ``jti`` when ``missing_ok`` is false.
        """
        token_id = _as_uuid(jti)
        changed = 0
        if token_id is not None:
            with self.rw_uow() as uow:
                changed = uow.refresh_tokens.revoke_if_active(token_id)
                if not changed and not missing_ok and uow.refresh_tokens.get(token_id) is None:
                    raise InvalidTokenError(
                        TokenErrorCode.INVALID_SIGNATURE, "Refresh token not found"
                    )
        elif not missing_ok:
            raise InvalidTokenError(TokenErrorCode.INVALID_SIGNATURE, "Refresh token not found")

        self._discard([str(jti)])
        return bool(changed)

    def revoke_all_for_user(self, user_id: uuid.UUID) -> int:
        """
        Revoke every outstanding refresh token of ``user_id`` in one transaction.

        :returns: Number of records revoked.
        """
        with self.rw_uow() as uow:
            ids = uow.refresh_tokens.active_ids_for_user(user_id, lock=True)
            revoked = uow.refresh_tokens.revoke_many(ids)
        self._discard(str(i) for i in ids)
        logger.info(
            "refresh_registry.revoked_all count=%s", revoked, extra={"user_id": str(user_id)}
        )
        return revoked

    def rotate(
        self,
        old_jti: str,
        subject: TokenSubject,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> IssuedToken:
        """
        Exchange ``old_jti`` for a brand-new refresh token.

        The old record is revoked with a compare-and-set in the same
        transaction that records the new one, so of two concurrent rotations
        of one token exactly one commits a new record.

        :raises InvalidTokenError: ``INVALID_SIGNATURE`` when the old record
            is unknown or was already used.
        """
        old_id = _as_uuid(old_jti)
        if old_id is None:
            raise InvalidTokenError(TokenErrorCode.MALFORMED, "Malformed token id")

        with self.rw_uow() as uow:
            if uow.refresh_tokens.revoke_if_active(old_id) == 0:
                if uow.refresh_tokens.get(old_id) is None:
                    raise InvalidTokenError(
                        TokenErrorCode.INVALID_SIGNATURE, "Refresh token not found"
                    )
                logger.warning(
                    "refresh_registry.reuse_detected",
                    extra={"jti": str(old_id), "user_id": str(subject.user_id)},
                )
                raise InvalidTokenError(
                    TokenErrorCode.INVALID_SIGNATURE, "Refresh token already used"
                )
            issued = self.codec.issue_token(TokenKind.REFRESH, subject.user_id, subject.email)
            self._insert(
                uow,
                issued.jti,
                subject.user_id,
                self.hasher.digest(issued.token),
                issued.expires_at,
                device_info,
                ip_address,
            )

        self._discard([str(old_id)])
        self.heal_cache(issued.jti, subject.user_id, issued.expires_at)
        return issued

    def _discard(self, jtis: Iterable[str]) -> None:
        keys = list(jtis)
        if not keys:
            return
        try:
            self.cache.discard(keys)
        except RedisError:
            logger.warning("refresh_registry.cache_delete_failed count=%s", len(keys))
