from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import redis  # type: ignore[import-untyped]

REVOKED_MARKER = "revoked"


@dataclass(slots=True)
class RedisRevocationCache:
    """
    Redis-backed revocation entries for **access tokens**.

    Keys
    ----
    ``jwt:bl:token:{jti}``
        Value ``"revoked"``; expires with the token itself.
    ``jwt:bl:user:{user_id}``
        Epoch milliseconds of the latest logout-all; every token of that
        user issued strictly earlier is revoked.

    Entries are only ever removed by expiry.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _kt(jti: str) -> str:
        return f"jwt:bl:token:{jti}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"jwt:bl:user:{user_id}"

    def mark_token(self, jti: str, ttl_ms: int) -> None:
        # SET without NX would be equivalent; NX keeps the original TTL on repeats
        self.r.set(self._kt(jti), REVOKED_MARKER, px=max(1, int(ttl_ms)), nx=True)

    def is_token_marked(self, jti: str) -> bool:
        return cast(int, self.r.exists(self._kt(jti))) == 1

    def set_user_marker(self, user_id: str, revoked_at_ms: int, ttl_ms: int) -> None:
        self.r.set(self._ku(user_id), str(int(revoked_at_ms)), px=max(1, int(ttl_ms)))

    def get_user_marker(self, user_id: str) -> str | None:
        raw = self.r.get(self._ku(user_id))
        if raw is None:
            return None
        return raw.decode() if isinstance(raw, bytes) else str(raw)
