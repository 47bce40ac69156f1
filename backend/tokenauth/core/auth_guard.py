"""
flask-jwt-extended callbacks guarding authenticated routes.

Only access tokens are accepted on requests. Signature and expiry are
checked by the extension (access key, ``JWT_ALGORITHM``); this module adds
the token-kind check, the revocation lookup and RFC 7807 error bodies.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask

from tokenauth.core.errors import Unauthorized, problem_response
from tokenauth.core.extensions import jwt

log = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "ACCESS"


def _unauthorized(message: str, code: str = "invalid_token", error_code: str | None = None):
    details = {"error_code": error_code} if error_code else None
    return problem_response(Unauthorized(message, code=code, details=details).to_problem())


def init_app(app: Flask) -> None:
    """Register the JWT callbacks. Must run after ``extensions.init_app``."""

    @jwt.token_verification_loader
    def _is_access_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]) -> bool:
        return jwt_payload.get("type") == ACCESS_TOKEN_TYPE

    @jwt.token_in_blocklist_loader
    def _is_revoked(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]) -> bool:
        from tokenauth.services.wiring import components

        return not components().auth.authenticate_access_token(jwt_payload)

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _unauthorized("Missing access token", code="unauthorized")

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        log.info("auth_guard.invalid_token")
        return _unauthorized("Invalid access token", error_code="MALFORMED")

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        return _unauthorized("Access token has expired", error_code="EXPIRED")

    @jwt.revoked_token_loader
    def _revoked_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        return _unauthorized("Access token has been revoked", error_code="INVALID_SIGNATURE")

    @jwt.token_verification_failed_loader
    def _wrong_kind(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        return _unauthorized("Access token required", error_code="WRONG_TOKEN_TYPE")
