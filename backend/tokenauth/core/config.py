"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

MIN_ACCESS_TOKEN_TTL_MS: Final[int] = 60_000
MIN_REFRESH_TOKEN_TTL_MS: Final[int] = 3_600_000
DEFAULT_ACCESS_TOKEN_TTL_MS: Final[int] = 900_000
DEFAULT_REFRESH_TOKEN_TTL_MS: Final[int] = 604_800_000

# Loads .env in development (no-op when missing)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when the application is built with unusable settings."""


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, keeping ``default`` when unset."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {val!r}") from exc


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_ACCESS_SECRET_KEY: str
        HMAC key signing access tokens. Also handed to ``flask-jwt-extended``
        as ``JWT_SECRET_KEY`` so the request guard verifies the same tokens.
    JWT_REFRESH_SECRET_KEY: str
        HMAC key signing refresh tokens. Never used by the request guard.
    JWT_ACCESS_TOKEN_TTL_MS: int
        Access-token lifetime in milliseconds (minimum 60000).
    JWT_REFRESH_TOKEN_TTL_MS: int
        Refresh-token lifetime in milliseconds (minimum 3600000).
    TOKEN_HASH_SECRET: str
        Key for the HMAC digest stored instead of raw refresh tokens.
    AUTH_DEFAULT_ROLE: str
        Role attached to every newly registered user.
    REDIS_URL: str
        Connection URL of the revocation and liveness cache.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_ACCESS_SECRET_KEY = os.getenv("JWT_ACCESS_SECRET", "CHANGE_ME_ACCESS_SECRET")
    JWT_REFRESH_SECRET_KEY = os.getenv("JWT_REFRESH_SECRET", "CHANGE_ME_REFRESH_SECRET")
    TOKEN_HASH_SECRET = os.getenv("TOKEN_HASH_SECRET", "CHANGE_ME_TOKEN_HASH_SECRET")

    # Token lifetimes
    JWT_ALGORITHM = "HS512"
    JWT_ACCESS_TOKEN_TTL_MS = env_int("JWT_ACCESS_TOKEN_TTL_MS", DEFAULT_ACCESS_TOKEN_TTL_MS)
    JWT_REFRESH_TOKEN_TTL_MS = env_int("JWT_REFRESH_TOKEN_TTL_MS", DEFAULT_REFRESH_TOKEN_TTL_MS)

    # flask-jwt-extended (request guard only)
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_DECODE_LEEWAY = 0

    AUTH_DEFAULT_ROLE = os.getenv("AUTH_DEFAULT_ROLE", "CUSTOMER")

    # DB & cache
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Leaves ``REDIS_URL`` empty: tests hand a fakeredis client to the factory.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REDIS_URL = None
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """
    Validated token configuration.

    :param access_secret: Key signing access tokens.
    :param refresh_secret: Key signing refresh tokens.
    :param access_ttl_ms: Access-token lifetime in milliseconds.
    :param refresh_ttl_ms: Refresh-token lifetime in milliseconds.
    :param hash_secret: Key for refresh-token digests.
    :param algorithm: JWS algorithm shared by both kinds.
    """

    access_secret: str
    refresh_secret: str
    access_ttl_ms: int = DEFAULT_ACCESS_TOKEN_TTL_MS
    refresh_ttl_ms: int = DEFAULT_REFRESH_TOKEN_TTL_MS
    hash_secret: str = ""
    algorithm: str = "HS512"

    def __post_init__(self) -> None:
        if not self.access_secret or not self.access_secret.strip():
            raise ConfigurationError("JWT access secret must not be blank")
        if not self.refresh_secret or not self.refresh_secret.strip():
            raise ConfigurationError("JWT refresh secret must not be blank")
        if self.access_ttl_ms < MIN_ACCESS_TOKEN_TTL_MS:
            raise ConfigurationError(
                f"Access token TTL must be at least {MIN_ACCESS_TOKEN_TTL_MS} ms"
            )
        if self.refresh_ttl_ms < MIN_REFRESH_TOKEN_TTL_MS:
            raise ConfigurationError(
                f"Refresh token TTL must be at least {MIN_REFRESH_TOKEN_TTL_MS} ms"
            )
        if not self.hash_secret or not self.hash_secret.strip():
            raise ConfigurationError("Token hash secret must not be blank")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TokenSettings:
        """
        Build settings from a Flask config mapping.

        :param config: Mapping holding the ``JWT_*`` and ``TOKEN_HASH_SECRET`` keys.
        :returns: Validated settings.
        :raises ConfigurationError: When a value is missing or out of range.
        """
        try:
            access_ttl = int(config.get("JWT_ACCESS_TOKEN_TTL_MS", DEFAULT_ACCESS_TOKEN_TTL_MS))
            refresh_ttl = int(
                config.get("JWT_REFRESH_TOKEN_TTL_MS", DEFAULT_REFRESH_TOKEN_TTL_MS)
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Token TTLs must be integers (milliseconds)") from exc
        return cls(
            access_secret=str(config.get("JWT_ACCESS_SECRET_KEY") or ""),
            refresh_secret=str(config.get("JWT_REFRESH_SECRET_KEY") or ""),
            access_ttl_ms=access_ttl,
            refresh_ttl_ms=refresh_ttl,
            hash_secret=str(config.get("TOKEN_HASH_SECRET") or ""),
            algorithm=str(config.get("JWT_ALGORITHM") or "HS512"),
        )
