"""
Signing and verification of access and refresh tokens.

Tokens are compact JWS (HS512 by default). Access and refresh tokens use
separate secrets, which is why this module talks to PyJWT directly instead of
going through flask-jwt-extended's single-key helpers.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

import jwt

from tokenauth.core.clock import from_epoch_ms, to_epoch_ms, utcnow
from tokenauth.core.config import TokenSettings
from tokenauth.core.logger import sanitize_log_value
from tokenauth.models.role import RoleType
from tokenauth.services._shared.errors import TokenErrorCode
from tokenauth.services.tokens.dto import IssuedToken, TokenKind, TokenValidationResult

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("jti", "sub", "email", "iat", "exp")

# ``exp``/``iat`` carry millisecond fractions and are checked here, not by PyJWT
_DECODE_OPTIONS = {"verify_exp": False, "verify_iat": False, "verify_nbf": False}


def _instant_to_claim(value: datetime) -> float:
    return to_epoch_ms(value) / 1000


def _claim_to_instant(value: Any) -> datetime | None:
    """
    Parse a NumericDate claim.

    :returns: ``None`` when the claim is absent.
    :raises ValueError: When the claim is present but not a number.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError("NumericDate claim must be a number")
    return from_epoch_ms(round(value * 1000))


def _parse_uuid(value: Any) -> str | None:
    """Canonical string form of a UUID claim, or ``None`` when it is not one."""
    if not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


class TokenCodec:
    """
    Issue and verify signed, expiring tokens.

    The only component that sees signing keys. :meth:`verify` never raises
    for a bad token; the reason is reported in the result's ``error_code``.

    :param settings: Validated token settings (keys, lifetimes, algorithm).
    :param clock: Source of the current instant, ``utcnow`` by default.
    """

    def __init__(
        self,
        settings: TokenSettings,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    def ttl_ms(self, kind: TokenKind) -> int:
        if TokenKind(kind) is TokenKind.ACCESS:
            return self._settings.access_ttl_ms
        return self._settings.refresh_ttl_ms

    def _secret(self, kind: TokenKind) -> str:
        if TokenKind(kind) is TokenKind.ACCESS:
            return self._settings.access_secret
        return self._settings.refresh_secret

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def issue(
        self,
        kind: TokenKind,
        user_id: uuid.UUID | str,
        email: str,
        roles: Iterable[RoleType | str] | None = None,
        jti: str | None = None,
    ) -> str:
        """Sign a new token and return its compact form."""
        return self.issue_token(kind, user_id, email, roles=roles, jti=jti).token

    def issue_token(
        self,
        kind: TokenKind,
        user_id: uuid.UUID | str,
        email: str,
        roles: Iterable[RoleType | str] | None = None,
        jti: str | None = None,
    ) -> IssuedToken:
        """
        Sign a new token and return it with the identifiers baked into it.

        :param kind: ``ACCESS`` or ``REFRESH``; picks the key and lifetime.
        :param user_id: Becomes the ``sub`` claim.
        :param email: Becomes the ``email`` claim.
        :param roles: Role names; only access tokens carry them.
        :param jti: Token identifier; a new UUID4 when omitted.
        :returns: The token plus its ``jti``, ``iat`` and ``exp``.
        :raises ValueError: ``jti`` is given but is not a UUID.
        """
        kind = TokenKind(kind)
        token_id = str(uuid.uuid4()) if jti is None else _parse_uuid(str(jti))
        if token_id is None:
            raise ValueError(f"Token id must be a UUID, got {jti!r}")
        issued_at = self._clock()
        expires_at = issued_at + timedelta(milliseconds=self.ttl_ms(kind))

        claims: dict[str, Any] = {
            "jti": token_id,
            "sub": str(user_id),
            "email": email,
            "type": kind.value,
            "iat": _instant_to_claim(issued_at),
            "exp": _instant_to_claim(expires_at),
        }
        if kind is TokenKind.ACCESS:
            claims["roles"] = [RoleType(r).value for r in (roles or ())]

        token = jwt.encode(claims, self._secret(kind), algorithm=self._settings.algorithm)
        return IssuedToken(
            token=token,
            jti=token_id,
            kind=kind,
            issued_at=from_epoch_ms(to_epoch_ms(issued_at)),
            expires_at=from_epoch_ms(to_epoch_ms(expires_at)),
        )

    # ------------------------------------------------------------------ #
    # Verify
    # ------------------------------------------------------------------ #

    def _decode(self, token: str, kind: TokenKind) -> dict[str, Any]:
        return jwt.decode(
            token,
            self._secret(kind),
            algorithms=[self._settings.algorithm],
            options=_DECODE_OPTIONS,
        )

    def _verifies_with(self, token: str, kind: TokenKind) -> bool:
        try:
            self._decode(token, kind)
        except jwt.InvalidTokenError:
            return False
        return True

    def verify(self, token: str, expected_kind: TokenKind) -> TokenValidationResult:
        """
        Validate ``token`` for use as ``expected_kind``.

        Checks, first failure wins:

        1. structure and header → ``MALFORMED``
        2. signature → ``INVALID_SIGNATURE`` (``WRONG_TOKEN_TYPE`` when the
           other kind's key verifies it)
        3. ``type`` claim → ``WRONG_TOKEN_TYPE``
        4. expiry, to the millisecond → ``EXPIRED``
        5. required claims → ``MISSING_CLAIMS``; non-UUID ``jti``/``sub``
           → ``MALFORMED``

        :param token: Compact JWS as received from the client.
        :param expected_kind: Kind the calling flow requires.
        :returns: A :class:`TokenValidationResult`; never raises for bad input.
        """
        expected = TokenKind(expected_kind)
        if not isinstance(token, str) or not token.strip():
            return TokenValidationResult.failure(expected, TokenErrorCode.MALFORMED)

        try:
            claims = self._decode(token, expected)
        except jwt.InvalidSignatureError:
            if self._verifies_with(token, expected.other):
                return self._rejected(expected, TokenErrorCode.WRONG_TOKEN_TYPE)
            return self._rejected(expected, TokenErrorCode.INVALID_SIGNATURE)
        except jwt.InvalidTokenError as exc:
            logger.debug("token.decode_failed", extra={"error_code": type(exc).__name__})
            return self._rejected(expected, TokenErrorCode.MALFORMED)

        if claims.get("type") != expected.value:
            return self._rejected(expected, TokenErrorCode.WRONG_TOKEN_TYPE)

        try:
            issued_at = _claim_to_instant(claims.get("iat"))
            expires_at = _claim_to_instant(claims.get("exp"))
        except (ValueError, OverflowError):
            return self._rejected(expected, TokenErrorCode.MALFORMED)

        email = claims.get("email") if isinstance(claims.get("email"), str) else None
        populated = {
            "jti": _parse_uuid(claims.get("jti")),
            "subject": _parse_uuid(claims.get("sub")),
            "email": email or None,
            "roles": self._roles(claims.get("roles")),
            "issued_at": issued_at,
            "expires_at": expires_at,
        }

        if expires_at is not None and to_epoch_ms(self._clock()) >= to_epoch_ms(expires_at):
            return TokenValidationResult.failure(expected, TokenErrorCode.EXPIRED, **populated)

        if any(claims.get(name) in (None, "") for name in REQUIRED_CLAIMS):
            return self._rejected(expected, TokenErrorCode.MISSING_CLAIMS, **populated)
        if populated["jti"] is None or populated["subject"] is None:
            return self._rejected(expected, TokenErrorCode.MALFORMED, **populated)

        return TokenValidationResult(valid=True, kind=expected, **populated)

    @staticmethod
    def _rejected(kind: TokenKind, code: TokenErrorCode, **claims) -> TokenValidationResult:
        logger.info("token.rejected", extra={"error_code": code.value})
        return TokenValidationResult.failure(kind, code, **claims)

    @staticmethod
    def _roles(raw: Any) -> tuple[RoleType, ...]:
        if not isinstance(raw, list):
            return ()
        roles: list[RoleType] = []
        for name in raw:
            try:
                roles.append(RoleType(name))
            except ValueError:
                logger.warning("token.unknown_role %s", sanitize_log_value(name))
        return tuple(roles)
