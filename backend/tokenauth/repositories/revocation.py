"""Durable revocation mirror repositories."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import cast

from sqlalchemy import delete, select
from sqlalchemy.engine import CursorResult

from tokenauth.models.revocation import RevokedToken, UserRevocation
from tokenauth.repositories.base import BaseRepository


class RevokedTokenRepository(BaseRepository[RevokedToken]):
    """Token-level revocation rows keyed by ``jti``."""

    model = RevokedToken

    def _pk_attr(self):
        return RevokedToken.jti

    def add_if_absent(self, jti: str, expires_at: datetime) -> bool:
        """
        Insert a row unless one already exists; existing rows are left untouched.

        :returns: ``True`` when a row was inserted.
        """
        if self.session.get(RevokedToken, jti) is not None:
            return False
        self.add(RevokedToken(jti=jti, expires_at=expires_at))
        return True

    def is_revoked(self, jti: str, now: datetime) -> bool:
        """Whether ``jti`` has a row that has not expired yet."""
        stmt = select(RevokedToken.jti).where(
            RevokedToken.jti == jti, RevokedToken.expires_at > now
        )
        return self.session.execute(stmt).first() is not None

    def live(self, now: datetime) -> list[RevokedToken]:
        stmt = select(RevokedToken).where(RevokedToken.expires_at > now)
        return list(self.session.execute(stmt).scalars())

    def purge_expired(self, now: datetime) -> int:
        """Delete rows whose expiry has passed. :returns: rows deleted."""
        stmt = delete(RevokedToken).where(RevokedToken.expires_at <= now)
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)


class UserRevocationRepository(BaseRepository[UserRevocation]):
    """User-level "revoke everything issued before" markers."""

    model = UserRevocation

    def _pk_attr(self):
        return UserRevocation.user_id

    def upsert(self, user_id: uuid.UUID, revoked_at: datetime, expires_at: datetime) -> None:
        """Create the marker or overwrite its timestamp (latest call wins)."""
        marker = self.session.get(UserRevocation, user_id)
        if marker is None:
            self.add(UserRevocation(user_id=user_id, revoked_at=revoked_at, expires_at=expires_at))
            return
        marker.revoked_at = revoked_at
        marker.expires_at = expires_at
        self.flush()

    def get_live(self, user_id: uuid.UUID, now: datetime) -> UserRevocation | None:
        """Return the marker for ``user_id`` unless it has expired."""
        stmt = select(UserRevocation).where(
            UserRevocation.user_id == user_id, UserRevocation.expires_at > now
        )
        return cast(UserRevocation | None, self.session.execute(stmt).scalars().first())

    def live(self, now: datetime) -> list[UserRevocation]:
        stmt = select(UserRevocation).where(UserRevocation.expires_at > now)
        return list(self.session.execute(stmt).scalars())

    def purge_expired(self, now: datetime) -> int:
        """Delete markers whose expiry has passed. :returns: rows deleted."""
        stmt = delete(UserRevocation).where(UserRevocation.expires_at <= now)
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)
