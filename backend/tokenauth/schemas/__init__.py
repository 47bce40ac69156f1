"""Marshmallow schemas for request validation and response rendering."""

from __future__ import annotations

from .auth import (
    LoginResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterResponseSchema,
    RegisterSchema,
    TokenPairSchema,
)
from .user import UserProfileSchema

__all__ = [
    "LoginResponseSchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RegisterResponseSchema",
    "RegisterSchema",
    "TokenPairSchema",
    "UserProfileSchema",
]
