from tokenauth.models.refresh_token import RefreshToken
from tokenauth.models.revocation import RevokedToken, UserRevocation
from tokenauth.models.role import Role, RoleType, UserRole
from tokenauth.models.user import User, UserStatus

__all__ = [
    "RefreshToken",
    "RevokedToken",
    "Role",
    "RoleType",
    "User",
    "UserRevocation",
    "UserRole",
    "UserStatus",
]
