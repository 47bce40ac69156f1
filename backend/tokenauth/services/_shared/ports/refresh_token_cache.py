from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class RefreshTokenCache(Protocol):
    """
    Liveness cache for refresh tokens.

    A present key means "issued, not revoked, not expired" as of the write.
    The durable registry stays authoritative; a missing key only means
    "ask the database".
    """

    def put(self, jti: str, user_id: str, ttl_ms: int) -> None: ...

    def contains(self, jti: str) -> bool: ...

    def discard(self, jtis: Iterable[str]) -> int:
        """Remove entries. :returns: number of keys actually deleted."""
