"""Domain errors and the handlers that render them as ``{"error": ...}`` bodies."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.zerobase.core.logging import get_logger

logger = get_logger(__name__)

# duplicate_table, duplicate_column, unique_violation, duplicate_object
CONFLICT_SQLSTATES = frozenset({"42P07", "42701", "23505", "42710"})


class ZeroBaseError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(ZeroBaseError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIdentifierError(BadRequestError):
    """A table or column name failed the identifier pattern."""


class UnsupportedTypeError(BadRequestError):
    """A column type is not in the allowed PostgreSQL type list."""


class QuotaExceededError(BadRequestError):
    """An upload pushed a project's disk usage over its quota."""


class UnauthorizedError(ZeroBaseError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ZeroBaseError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTokenError(ForbiddenError):
    """Session token is malformed, tampered with, or minted for another project."""


class ExpiredTokenError(InvalidTokenError):
    """Session token signature is valid but its expiry has passed."""


class NotFoundError(ZeroBaseError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ZeroBaseError):
    status_code = status.HTTP_409_CONFLICT


class ServiceUnavailableError(ZeroBaseError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def engine_error_message(exc: DBAPIError) -> str:
    """Return the database engine's own message for a DBAPI error."""
    return str(exc.orig) if exc.orig is not None else str(exc)


def engine_error_status(exc: DBAPIError) -> int:
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate in CONFLICT_SQLSTATES:
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_response(status_code: int, message: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "request_id": correlation_id.get(),
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(ZeroBaseError)
    async def zerobase_exception_handler(request: Request, exc: ZeroBaseError) -> JSONResponse:
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(DBAPIError)
    async def engine_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
        message = engine_error_message(exc)
        logger.warning("Database engine error", path=request.url.path, error=message)
        return _error_response(engine_error_status(exc), message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return _error_response(
            status.HTTP_400_BAD_REQUEST, f"{field}: {message}" if field else message
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
