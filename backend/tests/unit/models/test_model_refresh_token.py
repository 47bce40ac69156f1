"""Tests for the RefreshToken model."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory


class TestRefreshToken:
    def test_new_record_is_live(self):
        rec = RefreshTokenFactory(user_id=UserFactory().id)
        assert rec.revoked is False
        assert rec.created_at is not None

    def test_token_hash_is_unique(self, session):
        user = UserFactory()
        RefreshTokenFactory(user_id=user.id, token_hash="same-digest")

        with pytest.raises(IntegrityError):
            RefreshTokenFactory(user_id=user.id, token_hash="same-digest")
        session.rollback()
