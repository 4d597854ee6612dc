"""Identity-access error taxonomy and the exception handlers that render it.

Every error carries the HTTP status it maps to and a message that is safe to
show to the end user. Callers recover validation-type errors (``NotFound``,
``Expired``, ``AlreadyUsed``) into user-facing messages; ``DatastoreError`` is
surfaced as a generic failure and is never retried inside this package.
"""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.kithgrid.core.logging import get_logger

logger = get_logger(__name__)


class IdentityAccessError(Exception):
    """Base class for all errors raised by the identity subsystem."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be completed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(IdentityAccessError):
    """Bad credentials. Never reveals whether the email exists."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class Unauthorized(IdentityAccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class DuplicateIdentity(IdentityAccessError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "An account with this email already exists"


class DuplicateMembership(IdentityAccessError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already a member of this community"


class UnknownTenant(IdentityAccessError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Community not found or inactive"


class MembershipNotFound(IdentityAccessError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Membership not found"


class InvalidRoleSet(IdentityAccessError):
    status_code = 422
    default_message = "A membership needs at least one known role"


class CodeSpaceExhausted(IdentityAccessError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Could not generate a unique invitation code, please retry"


class NotFound(IdentityAccessError):
    """No invitation matches the presented code."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Invalid invitation code"


class Expired(IdentityAccessError):
    status_code = status.HTTP_410_GONE
    default_message = "This invitation code has expired"


class AlreadyUsed(IdentityAccessError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "This invitation code has already been used"


class DatastoreError(IdentityAccessError):
    """Fatal persistence failure. The caller decides whether to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(IdentityAccessError)
    async def identity_access_exception_handler(
        request: Request, exc: IdentityAccessError
    ) -> JSONResponse:
        request_id = correlation_id.get()
        if isinstance(exc, DatastoreError):
            logger.error(
                "Datastore failure",
                request_id=request_id,
                path=request.url.path,
                error=str(exc.__cause__ or exc),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                "error": type(exc).__name__,
                "request_id": request_id,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
