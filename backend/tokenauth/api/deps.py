"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from tokenauth.core.errors import Unauthorized
from tokenauth.services.wiring import AuthComponents
from tokenauth.services.wiring import components as _components

F = TypeVar("F", bound=Callable[..., Any])

MAX_DEVICE_INFO_LENGTH = 255


def components() -> AuthComponents:
    """Return the service graph built for the current application."""

    return _components(current_app)


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, unrevoked access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_user_id() -> uuid.UUID:
    """Return the authenticated user's id (``sub`` of the verified access token)."""

    try:
        return uuid.UUID(str(get_jwt_identity()))
    except ValueError as exc:
        raise Unauthorized("Invalid access token", code="invalid_token") from exc


def bearer_token() -> str:
    """Return the raw bearer token of the current request (empty when absent)."""

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    return token.strip() if scheme.lower() == "bearer" else ""


def client_context() -> tuple[str | None, str | None]:
    """Return ``(device_info, ip_address)`` recorded alongside refresh tokens."""

    user_agent = request.headers.get("User-Agent") or None
    device_info = user_agent[:MAX_DEVICE_INFO_LENGTH] if user_agent else None
    return device_info, request.remote_addr


def json_body() -> dict[str, Any]:
    """Return the JSON body, or an empty dict when absent or not an object."""

    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
