from __future__ import annotations

from typing import Protocol


class RevocationCache(Protocol):
    """
    Fast-path storage for access-token revocation entries.

    Implementations raise their backend's connectivity errors unchanged; the
    revocation store decides how to degrade.
    """

    def mark_token(self, jti: str, ttl_ms: int) -> None:
        """Block ``jti`` for ``ttl_ms`` milliseconds."""

    def is_token_marked(self, jti: str) -> bool: ...

    def set_user_marker(self, user_id: str, revoked_at_ms: int, ttl_ms: int) -> None:
        """Overwrite the user's "revoked before" timestamp (epoch ms)."""

    def get_user_marker(self, user_id: str) -> str | None:
        """Raw marker value, unparsed, or ``None`` when absent."""
