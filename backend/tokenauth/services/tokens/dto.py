from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from tokenauth.models.role import RoleType
from tokenauth.services._shared.errors import TokenErrorCode


class TokenKind(str, enum.Enum):
    """Value of the ``type`` claim; each kind is signed with its own key."""

    ACCESS = "ACCESS"
    REFRESH = "REFRESH"

    @property
    def other(self) -> TokenKind:
        return TokenKind.REFRESH if self is TokenKind.ACCESS else TokenKind.ACCESS


@dataclass(frozen=True, slots=True)
class TokenSubject:
    """
    Snapshot of the user a token is issued for.

    Taken inside a unit of work so that no ORM instance leaks past it.

    :param user_id: User primary key.
    :param email: Normalized email, copied into the ``email`` claim.
    :param roles: Role names for access-token ``roles`` claims.
    """

    user_id: uuid.UUID
    email: str
    roles: tuple[RoleType, ...] = ()


@dataclass(frozen=True, slots=True)
class IssuedToken:
    """
    A freshly signed token together with the values baked into it.

    :param token: Compact JWS.
    :param jti: Token identifier (UUID4 string).
    :param kind: Access or refresh.
    :param issued_at: ``iat`` as an aware UTC datetime.
    :param expires_at: ``exp`` as an aware UTC datetime.
    """

    token: str
    jti: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class TokenValidationResult:
    """
    Outcome of :meth:`TokenCodec.verify`.

    ``valid`` is ``True`` only when ``error_code`` is ``None``. Claims that
    could be read are filled in even for invalid tokens; an ``EXPIRED``
    result carries every claim so logout can still act on it.
    """

    valid: bool
    kind: TokenKind
    error_code: TokenErrorCode | None = None
    jti: str | None = None
    subject: str | None = None
    email: str | None = None
    roles: tuple[RoleType, ...] = field(default_factory=tuple)
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def failure(cls, kind: TokenKind, code: TokenErrorCode, **claims) -> TokenValidationResult:
        return cls(valid=False, kind=kind, error_code=code, **claims)


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Access and refresh tokens handed back to the client.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param token_type: Always ``"Bearer"``.
    :param expires_in: Access-token lifetime in whole seconds.
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
