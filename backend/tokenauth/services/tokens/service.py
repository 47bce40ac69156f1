from __future__ import annotations

import logging

from tokenauth.services._shared.base import BaseService
from tokenauth.services._shared.errors import (
    AccountSuspendedError,
    EmailNotVerifiedError,
    InvalidTokenError,
    TokenErrorCode,
)
from tokenauth.services.tokens.codec import TokenCodec
from tokenauth.services.tokens.dto import TokenKind, TokenPairOut, TokenSubject
from tokenauth.services.tokens.registry import RefreshTokenRegistry

logger = logging.getLogger(__name__)


class TokenService(BaseService):
    """
    Refresh flow: trade a refresh token for a new access/refresh pair.

    Every failure is terminal for the request; nothing is retried.

    :param codec: Verifies the incoming token and signs the new access token.
    :param registry: Checks liveness and performs the single-use rotation.
    """

    def __init__(self, *, codec: TokenCodec, registry: RefreshTokenRegistry) -> None:
        super().__init__()
        self.codec = codec
        self.registry = registry

    def refresh_access_token(
        self,
        raw_refresh_token: str,
        device_info: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPairOut:
        """
        Rotate ``raw_refresh_token`` and issue a fresh pair.

        The new access token carries the roles the user holds *now*, read
        from storage after rotation, not the roles of the original login.

        :raises InvalidTokenError: Token invalid, revoked, unknown, reused,
            or its user no longer exists.
        :raises AccountSuspendedError: The user is suspended.
        :raises EmailNotVerifiedError: The user's email is not verified.
        """
        result = self.codec.verify(raw_refresh_token, TokenKind.REFRESH)
        if not result.valid or result.jti is None:
            code = result.error_code or TokenErrorCode.MALFORMED
            raise InvalidTokenError(code, "Invalid refresh token")

        if not self.registry.is_valid(result.jti):
            raise InvalidTokenError(
                TokenErrorCode.INVALID_SIGNATURE, "Refresh token revoked or unknown"
            )

        if not result.email:
            raise InvalidTokenError(TokenErrorCode.MISSING_CLAIMS, "Missing email claim")

        with self.ro_uow() as uow:
            user = uow.users.get_by_email(result.email)
            if user is None:
                raise InvalidTokenError(TokenErrorCode.MISSING_CLAIMS, "User not found")
            if user.is_suspended:
                raise AccountSuspendedError()
            if not user.email_verified:
                raise EmailNotVerifiedError()
            subject = TokenSubject(user_id=user.id, email=user.email)

        refresh = self.registry.rotate(
            result.jti, subject, device_info=device_info, ip_address=ip_address
        )

        with self.ro_uow() as uow:
            roles = uow.roles.names_for_user(subject.user_id)

        access = self.codec.issue(TokenKind.ACCESS, subject.user_id, subject.email, roles)
        logger.info("token.refreshed", extra={"user_id": str(subject.user_id)})
        return TokenPairOut(
            access_token=access,
            refresh_token=refresh.token,
            token_type="Bearer",
            expires_in=self.codec.ttl_ms(TokenKind.ACCESS) // 1000,
        )
