"""Token lifecycle: signing, revocation, refresh-token registry and rotation."""

from __future__ import annotations

from tokenauth.services.tokens.codec import TokenCodec
from tokenauth.services.tokens.dto import (
    IssuedToken,
    TokenKind,
    TokenPairOut,
    TokenSubject,
    TokenValidationResult,
)
from tokenauth.services.tokens.registry import RefreshTokenRegistry
from tokenauth.services.tokens.revocation import RevocationCounts, RevocationStore
from tokenauth.services.tokens.service import TokenService

__all__ = [
    "IssuedToken",
    "RefreshTokenRegistry",
    "RevocationCounts",
    "RevocationStore",
    "TokenCodec",
    "TokenKind",
    "TokenPairOut",
    "TokenService",
    "TokenSubject",
    "TokenValidationResult",
]
