"""
Domain-level exceptions used within the service layer.

These exceptions are framework-agnostic: they never depend on Flask or HTTP.
The translation to HTTP responses (RFC 7807) is handled by
``tokenauth/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        Constraint name (PostgreSQL) or ``table.column`` (SQLite) to look for.

    Returns
    -------
    bool
        True if the driver message mentions the constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


class TokenErrorCode(str, enum.Enum):
    """Why a token failed validation (diagnostics, not user-facing copy)."""

    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    WRONG_TOKEN_TYPE = "WRONG_TOKEN_TYPE"
    MISSING_CLAIMS = "MISSING_CLAIMS"


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - Validation and business-rule failures are raised immediately and never
      retried; the API layer translates them.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: object
    """

    entity: str
    key: object

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class UserAlreadyExistsError(ConflictError):
    """Registration with an email or username that already has an account."""

    def __init__(self, detail: str = "User with provided credentials already exists") -> None:
        super().__init__("User", detail)

    def __str__(self) -> str:
        return self.detail


class DefaultRoleNotFoundError(ServiceError):
    """The role every new user receives is missing: a deployment problem, not a client one."""

    def __init__(self, role: str) -> None:
        super().__init__(f"Default role {role} not found. System misconfiguration.")
        self.role = role


class AuthenticationFailedError(ServiceError):
    """
    Bad email/password combination.

    Raised with the same message whether the account exists or not.
    """

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AccountSuspendedError(ServiceError):
    """The account exists but is suspended."""

    def __init__(self) -> None:
        super().__init__("Account is suspended")


class EmailNotVerifiedError(ServiceError):
    """The account exists but its email address has not been verified."""

    def __init__(self) -> None:
        super().__init__("Email address has not been verified")


class InvalidTokenError(ServiceError):
    """
    A token failed validation.

    :param error_code: Diagnostic reason, logged and exposed in problem details.
    :param message: Human-readable summary.
    """

    def __init__(self, error_code: TokenErrorCode, message: str = "Invalid token") -> None:
        super().__init__(message)
        self.error_code = TokenErrorCode(error_code)
        self.message = message
