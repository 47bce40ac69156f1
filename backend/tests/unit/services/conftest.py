"""Auth service wired to the application's token components and an event recorder."""

from __future__ import annotations

import pytest

from tokenauth.infra.security.password_hasher import WerkzeugPasswordHasher
from tokenauth.services._shared.ports import InMemoryEventPublisher
from tokenauth.services.auth.service import AuthService


@pytest.fixture()
def events() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture()
def service(components, events) -> AuthService:
    return AuthService(
        codec=components.codec,
        registry=components.registry,
        revocations=components.revocations,
        # Cheap hashing keeps the suite fast
        password_hasher=WerkzeugPasswordHasher(method="pbkdf2:sha256:1000"),
        events=events,
    )
