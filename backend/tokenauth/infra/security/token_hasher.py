from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class HmacTokenHasher:
    """
    Keyed digest for refresh tokens stored at rest.

    Produces ``base64url(HMAC-SHA256(secret, token))`` without padding, so
    equal tokens always map to the same value and the column can be unique.

    :param secret: Server-side key (``TOKEN_HASH_SECRET``).
    """

    secret: str

    def digest(self, token: str) -> str:
        mac = hmac.new(self.secret.encode("utf-8"), token.encode("utf-8"), hashlib.sha256)
        return base64.urlsafe_b64encode(mac.digest()).rstrip(b"=").decode("ascii")

    def verify(self, token: str, expected: str) -> bool:
        return hmac.compare_digest(self.digest(token), expected)
