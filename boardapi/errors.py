"""
Error taxonomy for the board API.

Every business and authentication failure is a ``BoardError`` subclass
carrying the HTTP status it maps to.  Services raise them; the single
handler registered by ``install_error_handlers`` turns them into JSON
responses, so routers never translate errors by hand.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BoardError(Exception):
    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class AuthError(BoardError):
    pass


class MissingCredential(AuthError):
    status_code = 401
    default_detail = "Authentication credential is missing"


class MalformedToken(AuthError):
    status_code = 403
    default_detail = "Token is not valid"


class ExpiredToken(AuthError):
    status_code = 403
    default_detail = "Token has expired"


class RevokedToken(AuthError):
    status_code = 403
    default_detail = "Token has been revoked"


class InvalidCredentials(AuthError):
    status_code = 401
    default_detail = "Invalid username or password"


class UserNotFound(AuthError):
    status_code = 404
    default_detail = "User not found"


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------

class RateLimited(BoardError):
    status_code = 403
    default_detail = "Too many requests for this author, try again later"


class Forbidden(BoardError):
    status_code = 403
    default_detail = "Operation not permitted"


class NotFound(BoardError):
    status_code = 404
    default_detail = "Resource not found"


class Conflict(BoardError):
    status_code = 409
    default_detail = "Resource already exists"


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

async def _board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    logger.info(
        "%s %s -> %d %s", request.method, request.url.path, exc.status_code, type(exc).__name__
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code, content={"detail": exc.detail}, headers=headers
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BoardError, _board_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
