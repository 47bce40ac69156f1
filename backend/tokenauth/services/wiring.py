"""
Explicit composition of the token and auth services.

Components receive their collaborators through constructors; this module is
the one place that builds the graph, once per application.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from tokenauth.core.config import ConfigurationError, TokenSettings
from tokenauth.core.extensions import get_redis
from tokenauth.infra.events.logging_publisher import LoggingEventPublisher
from tokenauth.infra.redis.redis_refresh_token_cache import RedisRefreshTokenCache
from tokenauth.infra.redis.redis_revocation_cache import RedisRevocationCache
from tokenauth.infra.security.password_hasher import WerkzeugPasswordHasher
from tokenauth.infra.security.token_hasher import HmacTokenHasher
from tokenauth.models.role import RoleType
from tokenauth.services._shared.ports import EventPublisher
from tokenauth.services.auth.service import AuthService
from tokenauth.services.tokens import (
    RefreshTokenRegistry,
    RevocationStore,
    TokenCodec,
    TokenService,
)

EXTENSION_KEY = "tokenauth"


@dataclass(frozen=True, slots=True)
class AuthComponents:
    settings: TokenSettings
    codec: TokenCodec
    revocations: RevocationStore
    registry: RefreshTokenRegistry
    tokens: TokenService
    auth: AuthService
    events: EventPublisher


def build_components(app: Flask, *, events: EventPublisher | None = None) -> AuthComponents:
    """
    Assemble the service graph from ``app.config`` and store it on the app.

    :param app: Application whose config and Redis client are used.
    :param events: Publisher override; a :class:`LoggingEventPublisher` by default.
    :returns: The assembled components (also at ``app.extensions["tokenauth"]``).
    :raises ConfigurationError: When the token settings are invalid.
    """
    settings = TokenSettings.from_config(app.config)
    try:
        default_role = RoleType(str(app.config.get("AUTH_DEFAULT_ROLE", "CUSTOMER")).upper())
    except ValueError as exc:
        raise ConfigurationError(
            f"AUTH_DEFAULT_ROLE must be one of {[r.value for r in RoleType]}"
        ) from exc

    client = get_redis()
    publisher = events or LoggingEventPublisher()
    codec = TokenCodec(settings)
    revocations = RevocationStore(
        cache=RedisRevocationCache(client), refresh_ttl_ms=settings.refresh_ttl_ms
    )
    registry = RefreshTokenRegistry(
        codec=codec,
        cache=RedisRefreshTokenCache(client),
        hasher=HmacTokenHasher(settings.hash_secret),
    )
    components = AuthComponents(
        settings=settings,
        codec=codec,
        revocations=revocations,
        registry=registry,
        tokens=TokenService(codec=codec, registry=registry),
        auth=AuthService(
            codec=codec,
            registry=registry,
            revocations=revocations,
            password_hasher=WerkzeugPasswordHasher(),
            events=publisher,
            default_role=default_role,
        ),
        events=publisher,
    )
    app.extensions[EXTENSION_KEY] = components
    return components


def components(app: Flask | None = None) -> AuthComponents:
    """Return the graph built for ``app`` (the current app by default)."""
    target = app or current_app
    try:
        return target.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Auth components are not initialized. Call create_app().") from exc
