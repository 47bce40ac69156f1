"""Durable mirror of the access-token revocation cache."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from tokenauth.core.extensions import db

from .base import TimestampMixin


class RevokedToken(db.Model):
    """Token-level revocation: a single access token ``jti`` blocked until it expires."""

    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("ix_revoked_tokens_expires_at", "expires_at"),)

    def __repr__(self) -> str:
        return f"<RevokedToken jti={self.jti}>"


class UserRevocation(TimestampMixin, db.Model):
    """
    User-level revocation marker.

    Every access token of ``user_id`` issued strictly before ``revoked_at`` is
    rejected. Overwritten on each logout-all; ignored once ``expires_at``
    has passed.
    """

    __tablename__ = "user_revocations"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    revoked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_user_revocations_expires_at", "expires_at"),)

    def __repr__(self) -> str:
        return f"<UserRevocation user_id={self.user_id}>"
