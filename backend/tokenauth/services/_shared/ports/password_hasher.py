from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """Port for one-way password hashing and verification."""

    def hash(self, plaintext: str) -> str: ...

    def matches(self, plaintext: str, hashed: str) -> bool: ...
