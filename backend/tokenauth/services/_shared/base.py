"""Base class for application services."""

from __future__ import annotations

from tokenauth.core import errors as api_errors
from tokenauth.services._shared.errors import (
    AccountSuspendedError,
    AuthenticationFailedError,
    ConflictError,
    DefaultRoleNotFoundError,
    EmailNotVerifiedError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
)
from tokenauth.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize the translation of service errors into API errors.

    Notes
    -----
    - Services never touch the global session directly; they use a Unit of Work.
    - Collaborators are passed to ``__init__``; nothing is looked up globally.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within a service.
        :type exc: Exception
        :returns: Translated exception ready to be raised or rendered.
        :rtype: Exception
        """
        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, DefaultRoleNotFoundError):
            # Never echo configuration details to clients
            return api_errors.ServerMisconfigured()

        if isinstance(exc, AuthenticationFailedError):
            return api_errors.Unauthorized(str(exc), code="authentication_failed")

        if isinstance(exc, AccountSuspendedError):
            return api_errors.Unauthorized(str(exc), code="account_suspended")

        if isinstance(exc, EmailNotVerifiedError):
            return api_errors.Forbidden(str(exc), code="email_not_verified")

        if isinstance(exc, InvalidTokenError):
            return api_errors.Unauthorized(
                exc.message,
                code="invalid_token",
                details={"error_code": exc.error_code.value},
            )

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
