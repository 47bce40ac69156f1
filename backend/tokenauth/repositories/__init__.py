"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from tokenauth.repositories.base import BaseRepository
from tokenauth.repositories.refresh_token import RefreshTokenRepository
from tokenauth.repositories.revocation import RevokedTokenRepository, UserRevocationRepository
from tokenauth.repositories.role import RoleRepository
from tokenauth.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "RevokedTokenRepository",
    "RoleRepository",
    "UserRepository",
    "UserRevocationRepository",
]
