"""Authentication endpoints backed by the auth and token services."""

from __future__ import annotations

from flask import Blueprint

from tokenauth.api.deps import (
    bearer_token,
    client_context,
    components,
    current_user_id,
    json_body,
    json_response,
    require_auth,
    timing,
)
from tokenauth.schemas import (
    LoginResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterResponseSchema,
    RegisterSchema,
    TokenPairSchema,
)
from tokenauth.services.auth.dto import LoginIn, LogoutIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
register_response_schema = RegisterResponseSchema()
login_response_schema = LoginResponseSchema()
token_pair_schema = TokenPairSchema()


@bp.post("/register")
@timing
def register():
    """Create an account; it must verify its email before logging in."""

    data = register_schema.load(json_body())
    result = components().auth.register(RegisterIn(**data))
    return json_response({"data": register_response_schema.dump(result)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh pair."""

    data = login_schema.load(json_body())
    device_info, ip_address = client_context()
    result = components().auth.login(
        LoginIn(
            email=data["email"],
            password=data["password"],
            device_info=device_info,
            ip_address=ip_address,
        )
    )
    return json_response({"data": login_response_schema.dump(result)})


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token and return a new pair."""

    data = refresh_schema.load(json_body())
    device_info, ip_address = client_context()
    pair = components().tokens.refresh_access_token(
        data["refresh_token"], device_info=device_info, ip_address=ip_address
    )
    return json_response({"data": token_pair_schema.dump(pair)})


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the caller's access token and, when given, a refresh token."""

    data = logout_schema.load(json_body())
    components().auth.logout(
        LogoutIn(access_token=bearer_token(), refresh_token=data.get("refresh_token"))
    )
    return "", 204


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """End every session of the caller."""

    revoked = components().auth.logout_all(current_user_id())
    return json_response({"data": {"revoked_refresh_tokens": revoked}})
