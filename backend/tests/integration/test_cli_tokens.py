"""Tests for the ``flask tokens`` maintenance commands."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from tokenauth.core.clock import utcnow
from tokenauth.models.role import RoleType
from tokenauth.repositories.role import RoleRepository


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


def test_seed_roles_is_idempotent(runner, session):
    first = runner.invoke(args=["tokens", "seed-roles"])
    assert first.exit_code == 0, first.output
    assert "created= 3" in first.output

    second = runner.invoke(args=["tokens", "seed-roles"])
    assert "existing= 3" in second.output
    assert RoleRepository(session=session).get_by_name(RoleType.ADMIN) is not None


def test_rehydrate_cache(runner, components, redis_client):
    jti = str(uuid.uuid4())
    components.revocations.blacklist_token(jti, utcnow() + timedelta(minutes=5))
    redis_client.flushall()

    result = runner.invoke(args=["tokens", "rehydrate-cache"])

    assert result.exit_code == 0, result.output
    assert "tokens=1" in result.output
    assert redis_client.exists(f"jwt:bl:token:{jti}") == 1


def test_purge_revocations(runner):
    result = runner.invoke(args=["tokens", "purge-revocations"])
    assert result.exit_code == 0, result.output
    assert "purged  tokens=0  users=0" in result.output
