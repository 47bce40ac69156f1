"""
Abstract Unit of Work contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokenauth.repositories import (
        RefreshTokenRepository,
        RevokedTokenRepository,
        RoleRepository,
        UserRepository,
        UserRevocationRepository,
    )


class UnitOfWork(ABC):
    """
    Transactional boundary of one service operation.

    Every repository below is bound to the same session, so what one writes
    the others see before commit. Writers commit on a clean exit and roll
    back on error; readers always roll back.
    """

    users: UserRepository
    roles: RoleRepository
    refresh_tokens: RefreshTokenRepository
    revoked_tokens: RevokedTokenRepository
    user_revocations: UserRevocationRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
