"""Refresh-token record persistence."""

from __future__ import annotations

import uuid
from typing import cast

from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult

from tokenauth.models.refresh_token import RefreshToken
from tokenauth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken` records.

    Revocation is expressed as conditional ``UPDATE`` statements so that the
    affected-row count tells callers whether *they* flipped the flag.
    """

    model = RefreshToken

    def revoke_if_active(self, jti: uuid.UUID) -> int:
        """
        Compare-and-set ``revoked`` from false to true.

        :param jti: Record identifier.
        :returns: ``1`` when this call revoked the record, ``0`` when it was
            already revoked or does not exist.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == jti, RefreshToken.revoked.is_(False))
            .values(revoked=True)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)

    def active_ids_for_user(self, user_id: uuid.UUID, *, lock: bool = False) -> list[uuid.UUID]:
        """Identifiers of the user's non-revoked records (``FOR UPDATE`` when ``lock``)."""
        stmt = select(RefreshToken.id).where(
            RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False)
        )
        if lock:
            stmt = stmt.with_for_update()
        return list(self.session.execute(stmt).scalars())

    def revoke_many(self, jtis: list[uuid.UUID]) -> int:
        """Revoke every still-active record among ``jtis``. :returns: rows changed."""
        if not jtis:
            return 0
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id.in_(jtis), RefreshToken.revoked.is_(False))
            .values(revoked=True)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)
