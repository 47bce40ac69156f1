"""User profile Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields

from tokenauth.models.role import RoleType
from tokenauth.models.user import UserStatus


class UserProfileSchema(Schema):
    """Public representation of a user (no credentials)."""

    id = fields.UUID(required=True)
    email = fields.Email(required=True)
    username = fields.String(allow_none=True)
    first_name = fields.String()
    last_name = fields.String()
    phone_number = fields.String(allow_none=True)
    status = fields.Enum(UserStatus, by_value=True)
    email_verified = fields.Boolean()
    phone_verified = fields.Boolean()
    roles = fields.List(fields.Enum(RoleType, by_value=True))
    last_login_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
