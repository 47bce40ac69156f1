from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash


@dataclass(slots=True)
class WerkzeugPasswordHasher:
    """
    Salted one-way password hashing backed by :mod:`werkzeug.security`.

    :param method: Werkzeug hashing method string (e.g. ``"scrypt"``).
    """

    method: str = "scrypt"

    def hash(self, plaintext: str) -> str:
        return generate_password_hash(plaintext, method=self.method)

    def matches(self, plaintext: str, hashed: str) -> bool:
        if not hashed:
            return False
        # ``check_password_hash`` is untyped; coerce to bool
        return bool(check_password_hash(hashed, plaintext))
