"""User model definition for the authentication backend."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String, false
from sqlalchemy.orm import Mapped, mapped_column, validates

from tokenauth.core.extensions import db

from .base import ReprMixin, TimestampMixin, UUIDPKMixin


class UserStatus(str, enum.Enum):
    """Account lifecycle states."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DEACTIVATED = "DEACTIVATED"


class User(UUIDPKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity.

    Roles and refresh tokens reference the user by ``id`` only; they are
    loaded through their repositories rather than navigated from here.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    username : str | None
        Optional public handle, unique when present.
    password_hash : str
        One-way hash produced by the configured password hasher.
    status : UserStatus
        ``ACTIVE`` accounts may log in; ``SUSPENDED`` ones are refused.
    email_verified : bool
        Login and refresh are refused until the address is verified.
    last_login_at : datetime | None
        Set on each successful login.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    username: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status", native_enum=False, length=20),
        nullable=False,
        default=UserStatus.ACTIVE,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    phone_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_suspended(self) -> bool:
        return self.status == UserStatus.SUSPENDED

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        v = value.strip()
        return v or None
