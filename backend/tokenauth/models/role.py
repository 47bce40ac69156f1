"""Role catalogue and the user/role join table."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tokenauth.core.extensions import db

from .base import PKMixin, ReprMixin


class RoleType(str, enum.Enum):
    """Roles a user can hold; carried in access-token ``roles`` claims."""

    CUSTOMER = "CUSTOMER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class Role(PKMixin, ReprMixin, db.Model):
    """A named role. Seeded once per environment (``flask tokens seed-roles``)."""

    __tablename__ = "roles"

    name: Mapped[RoleType] = mapped_column(
        Enum(RoleType, name="role_type", native_enum=False, length=20),
        nullable=False,
        unique=True,
    )


class UserRole(db.Model):
    """Explicit association row linking a user to a role."""

    __tablename__ = "user_roles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<UserRole user_id={self.user_id} role_id={self.role_id}>"
