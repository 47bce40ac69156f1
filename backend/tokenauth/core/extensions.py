"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

from tokenauth.core.config import ConfigurationError

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()
redis_client: redis.Redis | None = None


def init_app(app: Flask, *, redis_override: redis.Redis | None = None) -> None:
    """Initialize SQLAlchemy, migrations, JWT and the Redis client.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`tokenauth.models` package so SQLAlchemy metadata is complete for
        migrations.
    redis_override: redis.Redis | None
        Ready-made client (e.g. ``fakeredis.FakeRedis``) used instead of
        connecting to ``REDIS_URL``.

    Raises
    ------
    ConfigurationError
        When neither an override nor a reachable ``REDIS_URL`` is available.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from tokenauth import models as _models  # noqa: F401

    migrate.init_app(app, db)

    # flask-jwt-extended only verifies access tokens on incoming requests
    app.config["JWT_SECRET_KEY"] = app.config.get("JWT_ACCESS_SECRET_KEY")
    jwt.init_app(app)

    global redis_client
    if redis_override is not None:
        redis_client = redis_override
        app.extensions["redis_client"] = redis_client
        return

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        raise ConfigurationError("REDIS_URL is not configured and no Redis client was provided.")

    redis_client = redis.Redis.from_url(redis_url, decode_responses=True)
    try:
        redis_client.ping()
    except RedisError as exc:
        raise ConfigurationError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = redis_client


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Call init_app() first.")
    return redis_client
