"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tokenauth.api.deps import json_response, timing
from tokenauth.core.extensions import db, get_redis

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return database and cache reachability.

    A cache outage degrades the service without stopping it, so the endpoint
    still answers 200 and reports ``"degraded"``.
    """

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    finally:
        db.session.rollback()

    redis_status = "ok"
    try:
        get_redis().ping()
    except RedisError:
        current_app.logger.warning("healthcheck.redis_error")
        redis_status = "fail"

    overall = "ok" if db_status == "ok" and redis_status == "ok" else "degraded"
    version = current_app.config.get("APP_VERSION", "dev")
    payload = {"status": overall, "db": db_status, "redis": redis_status, "version": version}
    return json_response(payload, status=200 if db_status == "ok" else 503)
