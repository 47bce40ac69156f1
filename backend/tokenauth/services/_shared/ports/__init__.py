"""
tokenauth.services._shared.ports
================================

Collection of *ports* (hexagonal interfaces) the services depend on.

Modules
-------
- :mod:`password_hasher`: :class:`~.PasswordHasher`, one-way hash and verify.
- :mod:`event_publisher`: :class:`~.EventPublisher` for fire-and-forget
  domain events, plus the :class:`~.InMemoryEventPublisher` test double.
- :mod:`revocation_cache`: :class:`~.RevocationCache`, fast path of the
  access-token revocation store.
- :mod:`refresh_token_cache`: :class:`~.RefreshTokenCache`, liveness cache in
  front of the refresh-token registry.

Concrete adapters live under ``tokenauth.infra``.
"""

from __future__ import annotations

from .event_publisher import EventPublisher, InMemoryEventPublisher
from .password_hasher import PasswordHasher
from .refresh_token_cache import RefreshTokenCache
from .revocation_cache import RevocationCache

__all__ = [
    "EventPublisher",
    "InMemoryEventPublisher",
    "PasswordHasher",
    "RefreshTokenCache",
    "RevocationCache",
]
