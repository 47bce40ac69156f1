"""Role lookups and user/role assignments."""

from __future__ import annotations

import uuid
from typing import cast

from sqlalchemy import select

from tokenauth.models.role import Role, RoleType, UserRole
from tokenauth.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """Persistence-only repository for :class:`Role` and :class:`UserRole` rows."""

    model = Role

    def get_by_name(self, name: RoleType) -> Role | None:
        """Return the role called ``name`` or ``None`` when it was never seeded."""
        stmt = select(Role).where(Role.name == RoleType(name))
        return cast(Role | None, self.session.execute(stmt).scalars().first())

    def assign(self, user_id: uuid.UUID, role_id: int) -> UserRole:
        """Link a user to a role (flushes)."""
        link = UserRole(user_id=user_id, role_id=role_id)
        self.session.add(link)
        self.flush()
        return link

    def unassign(self, user_id: uuid.UUID, role_id: int) -> bool:
        """Remove a user/role link. :returns: ``True`` if the link existed."""
        link = self.session.get(UserRole, (user_id, role_id))
        if link is None:
            return False
        self.session.delete(link)
        self.flush()
        return True

    def names_for_user(self, user_id: uuid.UUID) -> list[RoleType]:
        """
        Return the user's current role names, sorted for stable token claims.

        :param user_id: Owner of the roles.
        :returns: Role names (possibly empty).
        """
        stmt = (
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
        )
        names = [RoleType(n) for n in self.session.execute(stmt).scalars()]
        return sorted(names, key=lambda r: r.value)

    def ensure(self, name: RoleType) -> tuple[Role, bool]:
        """Return the role ``name``, creating it when missing. :returns: ``(role, created)``."""
        existing = self.get_by_name(name)
        if existing is not None:
            return existing, False
        return self.add(Role(name=RoleType(name))), True
