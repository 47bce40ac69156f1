# tokenauth/services/auth/service.py
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tokenauth.core.clock import from_epoch_ms, utcnow
from tokenauth.core.logger import sanitize_log_value
from tokenauth.models.role import RoleType
from tokenauth.models.user import User, UserStatus
from tokenauth.services._shared.base import BaseService
from tokenauth.services._shared.errors import (
    AccountSuspendedError,
    AuthenticationFailedError,
    DefaultRoleNotFoundError,
    EmailNotVerifiedError,
    NotFoundError,
    ServiceError,
    TokenErrorCode,
    UserAlreadyExistsError,
    violates,
)
from tokenauth.services._shared.ports import EventPublisher, PasswordHasher
from tokenauth.services.auth.dto import (
    LoginIn,
    LoginOut,
    LogoutIn,
    RegisterIn,
    RegisterOut,
    UserProfileOut,
)
from tokenauth.services.auth.events import UserLoggedIn, UserRegistered
from tokenauth.services.tokens.codec import TokenCodec
from tokenauth.services.tokens.dto import TokenKind, TokenPairOut, TokenSubject
from tokenauth.services.tokens.registry import RefreshTokenRegistry
from tokenauth.services.tokens.revocation import RevocationStore

logger = logging.getLogger(__name__)

# Errors a best-effort logout step may hit; anything else is a bug and propagates
_BEST_EFFORT_ERRORS = (ServiceError, RedisError, SQLAlchemyError)


class AuthService(BaseService):
    """
    Registration and session lifecycle (login / logout / logout-all).

    Refresh is handled by :class:`~tokenauth.services.tokens.TokenService`;
    this service issues the first pair at login and tears sessions down.

    :param codec: Signs access tokens and reads tokens presented at logout.
    :param registry: Issues and revokes refresh tokens.
    :param revocations: Access-token revocation store.
    :param password_hasher: Hashes and checks passwords.
    :param events: Receives ``UserRegistered`` and ``UserLoggedIn``.
    :param default_role: Role attached to every new account.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        registry: RefreshTokenRegistry,
        revocations: RevocationStore,
        password_hasher: PasswordHasher,
        events: EventPublisher,
        default_role: RoleType = RoleType.CUSTOMER,
    ) -> None:
        super().__init__()
        self.codec = codec
        self.registry = registry
        self.revocations = revocations
        self.hasher = password_hasher
        self.events = events
        self.default_role = RoleType(default_role)

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> RegisterOut:
        """
        Create an account holding the default role.

        The account starts ``ACTIVE`` with an unverified email, so it cannot
        log in until the address is verified.

        :raises UserAlreadyExistsError: Email or username already taken,
            including a concurrent registration caught by the unique index.
        :raises DefaultRoleNotFoundError: The default role was never seeded.
        """
        try:
            with self.rw_uow() as uow:
                if uow.users.exists_by_email(dto.email):
                    raise UserAlreadyExistsError("Email is already registered")
                if dto.username and uow.users.get_by_username(dto.username) is not None:
                    raise UserAlreadyExistsError("Username is already taken")

                role = uow.roles.get_by_name(self.default_role)
                if role is None:
                    logger.error("auth.default_role_missing %s", self.default_role.value)
                    raise DefaultRoleNotFoundError(self.default_role.value)

                password_hash = self.hasher.hash(dto.password)

                try:
                    user = User(
                        email=dto.email,
                        username=dto.username,
                        password_hash=password_hash,
                        first_name=dto.first_name,
                        last_name=dto.last_name,
                        phone_number=dto.phone_number,
                        status=UserStatus.ACTIVE,
                        email_verified=False,
                        phone_verified=False,
                    )
                except ValueError as exc:
                    raise ServiceError(str(exc)) from exc
                uow.users.add(user)
                uow.roles.assign(user.id, role.id)
                profile = self._profile(user, [role.name])
        except IntegrityError as exc:
            if violates(exc, "email") or violates(exc, "username"):
                raise UserAlreadyExistsError() from exc
            raise

        self.events.publish(
            UserRegistered(user_id=profile.id, email=profile.email, occurred_at=utcnow())
        )
        logger.info("auth.registered", extra={"user_id": str(profile.id)})
        return RegisterOut(user=profile)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Check credentials and account state, then issue a token pair.

        :raises AuthenticationFailedError: Unknown email or wrong password;
            the two cases are indistinguishable to the caller.
        :raises AccountSuspendedError: Correct password, suspended account.
        :raises EmailNotVerifiedError: Correct password, unverified email.
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(dto.email)
            if user is None or not self.hasher.matches(dto.password, user.password_hash):
                logger.info(
                    "auth.login_failed %s", sanitize_log_value(dto.email.lower().strip())
                )
                raise AuthenticationFailedError()
            if user.is_suspended:
                raise AccountSuspendedError()
            if not user.email_verified:
                raise EmailNotVerifiedError()
            user_id = user.id

        now = utcnow()
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise AuthenticationFailedError()
            user.last_login_at = now
            uow.users.flush()
            roles = uow.roles.names_for_user(user_id)
            profile = self._profile(user, roles)

        subject = TokenSubject(user_id=profile.id, email=profile.email, roles=profile.roles)
        access = self.codec.issue(TokenKind.ACCESS, subject.user_id, subject.email, subject.roles)
        refresh = self.registry.issue_for(
            subject, device_info=dto.device_info, ip_address=dto.ip_address
        )

        # Only a session whose refresh record exists is announced
        self.events.publish(
            UserLoggedIn(
                user_id=profile.id,
                email=profile.email,
                occurred_at=now,
                ip_address=dto.ip_address,
            )
        )
        logger.info("auth.logged_in", extra={"user_id": str(profile.id)})

        tokens = TokenPairOut(
            access_token=access,
            refresh_token=refresh.token,
            token_type="Bearer",
            expires_in=self.codec.ttl_ms(TokenKind.ACCESS) // 1000,
        )
        return LoginOut(tokens=tokens, user=profile)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the presented tokens as far as possible.

        Never raises for a bad token or a storage hiccup: each step logs its
        own failure and the other still runs. Expired tokens are accepted;
        blacklisting them is a no-op.
        """
        access = self.codec.verify(dto.access_token, TokenKind.ACCESS)
        usable = access.valid or access.error_code is TokenErrorCode.EXPIRED
        if usable and access.jti and access.expires_at:
            try:
                self.revocations.blacklist_token(access.jti, access.expires_at)
            except _BEST_EFFORT_ERRORS:
                logger.warning(
                    "auth.logout.blacklist_failed", extra={"jti": access.jti}, exc_info=True
                )
        else:
            logger.info(
                "auth.logout.access_token_ignored",
                extra={"error_code": access.error_code.value if access.error_code else None},
            )

        if not dto.refresh_token:
            return

        refresh = self.codec.verify(dto.refresh_token, TokenKind.REFRESH)
        if refresh.jti is None:
            logger.info(
                "auth.logout.refresh_token_ignored",
                extra={"error_code": refresh.error_code.value if refresh.error_code else None},
            )
            return
        try:
            self.registry.revoke(refresh.jti, missing_ok=True)
        except _BEST_EFFORT_ERRORS:
            logger.warning(
                "auth.logout.refresh_revoke_failed", extra={"jti": refresh.jti}, exc_info=True
            )

    def logout_all(self, user_id: uuid.UUID) -> int:
        """
        End every session of ``user_id``.

        Access tokens issued before now are revoked through a user-level
        marker; every outstanding refresh token is revoked in the registry.
        Logging in again afterwards works normally.

        :returns: Number of refresh tokens revoked.
        :raises NotFoundError: Unknown user.
        """
        with self.ro_uow() as uow:
            if uow.users.get(user_id) is None:
                raise NotFoundError("User", user_id)

        self.revocations.revoke_all_for_user(user_id)
        revoked = self.registry.revoke_all_for_user(user_id)
        logger.info("auth.logout_all", extra={"user_id": str(user_id)})
        return revoked

    # ------------------------------------------------------------------ #
    # Queries used by the HTTP layer
    # ------------------------------------------------------------------ #

    def get_profile(self, user_id: uuid.UUID) -> UserProfileOut:
        """:raises NotFoundError: Unknown user."""
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return self._profile(user, uow.roles.names_for_user(user_id))

    def authenticate_access_token(self, claims: Mapping[str, Any]) -> bool:
        """
        Whether decoded access-token ``claims`` are still acceptable.

        Signature and expiry are already verified by the request guard; this
        answers the revocation question. Storage outages fail open.
        """
        jti, sub, iat = claims.get("jti"), claims.get("sub"), claims.get("iat")
        if not jti or not sub or isinstance(iat, bool) or not isinstance(iat, int | float):
            return False
        issued_at = from_epoch_ms(round(iat * 1000))
        return not self.revocations.is_blacklisted(str(jti), str(sub), issued_at)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _profile(user: User, roles: Iterable[RoleType]) -> UserProfileOut:
        return UserProfileOut(
            id=user.id,
            email=user.email,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            phone_number=user.phone_number,
            status=UserStatus(user.status),
            email_verified=bool(user.email_verified),
            phone_verified=bool(user.phone_verified),
            roles=tuple(sorted((RoleType(r) for r in roles), key=lambda r: r.value)),
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )
