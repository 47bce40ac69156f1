from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import cast

import redis  # type: ignore[import-untyped]


@dataclass(slots=True)
class RedisRefreshTokenCache:
    """
    Redis liveness cache for refresh tokens: ``jwt:rt:{jti}`` → owning user id.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(jti: str) -> str:
        return f"jwt:rt:{jti}"

    def put(self, jti: str, user_id: str, ttl_ms: int) -> None:
        if ttl_ms <= 0:
            return
        self.r.set(self._k(jti), user_id, px=int(ttl_ms))

    def contains(self, jti: str) -> bool:
        return cast(int, self.r.exists(self._k(jti))) == 1

    def discard(self, jtis: Iterable[str]) -> int:
        keys = [self._k(j) for j in jtis]
        if not keys:
            return 0
        return cast(int, self.r.delete(*keys))
