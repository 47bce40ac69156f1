"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, post_load, validate

from tokenauth.schemas.user import UserProfileSchema
from tokenauth.services.auth.dto import AuthStatus

PASSWORD_PATTERN = r"^(?=.*[0-9])(?=.*[a-z])(?=.*[A-Z])(?=.*[!@#$%^&+=])(?=\S+$).{8,128}$"
PASSWORD_MESSAGE = (
    "Password must be 8-128 characters long and include at least one uppercase letter, "
    "one lowercase letter, one digit, and one special character."
)
NAME_PATTERN = r"^[A-Za-z\s'-]+$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=255))
    username = fields.String(
        load_default=None,
        validate=[
            validate.Length(min=3, max=32),
            validate.Regexp(
                r"^[a-zA-Z0-9_]+$",
                error="Username can only contain letters, numbers, and underscores",
            ),
        ],
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=[
            validate.Length(min=8, max=128),
            validate.Regexp(PASSWORD_PATTERN, error=PASSWORD_MESSAGE),
        ],
    )
    first_name = fields.String(
        required=True,
        validate=[
            validate.Length(min=1, max=50),
            validate.Regexp(NAME_PATTERN, error="First name contains invalid characters"),
        ],
    )
    last_name = fields.String(
        required=True,
        validate=[
            validate.Length(min=1, max=50),
            validate.Regexp(NAME_PATTERN, error="Last name contains invalid characters"),
        ],
    )
    phone_number = fields.String(
        load_default=None,
        validate=[
            validate.Length(max=20),
            validate.Regexp(
                r"^\+?[1-9]\d{7,14}$",
                error="Phone number must be in valid international format",
            ),
        ],
    )

    @post_load
    def _normalize(self, data, **kwargs):
        data["email"] = data["email"].strip().lower()
        data["first_name"] = _strip(data["first_name"])
        data["last_name"] = _strip(data["last_name"])
        return data


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(
        required=True, load_only=True, validate=validate.Length(min=8, max=128)
    )


class RefreshSchema(Schema):
    """Input payload for the refresh endpoint."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=4096))


class LogoutSchema(Schema):
    """Optional body of the logout endpoint."""

    refresh_token = fields.String(load_default=None, validate=validate.Length(max=4096))


class TokenPairSchema(Schema):
    """Response payload carrying an access/refresh pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)


class RegisterResponseSchema(Schema):
    user = fields.Nested(UserProfileSchema)
    auth_status = fields.Enum(AuthStatus, by_value=True)


class LoginResponseSchema(Schema):
    tokens = fields.Nested(TokenPairSchema)
    user = fields.Nested(UserProfileSchema)
    auth_status = fields.Enum(AuthStatus, by_value=True)
