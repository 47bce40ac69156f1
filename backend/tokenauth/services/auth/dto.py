"""
DTOs for AuthService.

Plain frozen dataclasses: the API layer builds the inputs from validated
request bodies and renders the outputs; ORM models never cross this line.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime

from tokenauth.models.role import RoleType
from tokenauth.models.user import UserStatus
from tokenauth.services.tokens.dto import TokenPairOut

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param email: Login email (normalized by the model).
    :type email: str
    :param password: Raw password, hashed before it is stored.
    :type password: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    :param phone_number: Optional phone number.
    :type phone_number: str | None
    :param username: Optional public handle, unique when given.
    :type username: str | None
    """

    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str | None = None
    username: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Login email.
    :param password: Raw password to verify.
    :param device_info: Client description recorded with the refresh token.
    :param ip_address: Client address recorded with the refresh token.
    """

    email: str
    password: str
    device_info: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """Input DTO for the refresh flow."""

    refresh_token: str
    device_info: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param access_token: The caller's access token (may already be expired).
    :param refresh_token: Optional refresh token to revoke alongside.
    """

    access_token: str
    refresh_token: str | None = None


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


class AuthStatus(str, enum.Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFIED = "VERIFIED"


@dataclass(frozen=True, slots=True)
class UserProfileOut:
    """
    Public view of a user; never carries the password hash.
    """

    id: uuid.UUID
    email: str
    username: str | None
    first_name: str
    last_name: str
    phone_number: str | None
    status: UserStatus
    email_verified: bool
    phone_verified: bool
    roles: tuple[RoleType, ...]
    last_login_at: datetime | None
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class RegisterOut:
    user: UserProfileOut
    auth_status: AuthStatus = AuthStatus.PENDING_VERIFICATION


@dataclass(frozen=True, slots=True)
class LoginOut:
    tokens: TokenPairOut
    user: UserProfileOut
    auth_status: AuthStatus = AuthStatus.VERIFIED


__all__ = [
    "AuthStatus",
    "LoginIn",
    "LoginOut",
    "LogoutIn",
    "RefreshIn",
    "RegisterIn",
    "RegisterOut",
    "TokenPairOut",
    "UserProfileOut",
]
