"""
Domain errors and their HTTP rendering.

Routers and services raise these; a single exception handler turns them into
`{"error": <message>, "code": <code>}` bodies so clients can tell a private
account apart from a missing one. Database failures escaping a request are
rendered as a generic storage error.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class WatchHiveError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(WatchHiveError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class UnauthorizedError(WatchHiveError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"


class NotFoundError(WatchHiveError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class PrivateAccountError(WatchHiveError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "PRIVATE_ACCOUNT"

    def __init__(self, message: str = "This account is private. Follow to see entries.") -> None:
        super().__init__(message)


class ConflictError(WatchHiveError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class UpstreamUnavailableError(WatchHiveError):
    """The external catalog could not be reached or answered with an error."""
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_UNAVAILABLE"


class StorageError(WatchHiveError):
    code = "STORAGE_ERROR"


async def _handle_domain_error(request: Request, exc: WatchHiveError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


async def _handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    err = StorageError("Internal storage error")
    return JSONResponse(
        status_code=err.status_code,
        content={"error": err.message, "code": err.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WatchHiveError, _handle_domain_error)
    app.add_exception_handler(SQLAlchemyError, _handle_storage_error)
