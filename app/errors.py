"""
Error taxonomy shared by repositories, the session manager and the HTTP layer.

Every error carries the HTTP status it maps to, so the exception handlers
registered in ``app.main`` can translate them without a lookup table.
Not-found and forbidden conditions stay distinct all the way to the client.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = 500
    message: str = "internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


# --- NotFound ---

class NotFoundError(AppError):
    status_code = 404
    message = "not found"


class PostNotFoundError(NotFoundError):
    message = "invalid post id"


class CommentNotFoundError(NotFoundError):
    message = "invalid comment id"


class NoSuchUserError(NotFoundError):
    message = "user not found"


# --- Authorization / authentication ---

class ForbiddenError(AppError):
    status_code = 403
    message = "no access"


class AuthenticationError(AppError):
    status_code = 401
    message = "unauthorized"


class UnauthenticatedError(AuthenticationError):
    """No session could be found for the request."""


class BadTokenError(AuthenticationError):
    """The bearer token failed signature, algorithm or claim checks."""

    message = "bad token"


# --- Users ---

class AlreadyExistsError(AppError):
    status_code = 409
    message = "user already exists"


class BadCredentialsError(AppError):
    status_code = 400
    message = "invalid password"


class InvalidInputError(AppError):
    status_code = 422
    message = "invalid input"


# --- Internal ---

class StorageError(AppError):
    message = "storage failure"


class TokenSigningError(AppError):
    message = "token signing failure"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
