"""Service error taxonomy and the HTTP boundary that maps it to responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base for failures raised by services; carries the HTTP status the boundary uses."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed or out-of-range input."""

    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateError(ServiceError):
    """A unique value (username, email) is already taken."""

    status_code = status.HTTP_400_BAD_REQUEST


class AlreadyCollectedError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "image already collected") -> None:
        super().__init__(message)


class NotInCollectionError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "image not in collection") -> None:
        super().__init__(message)


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentialsError(UnauthorizedError):
    """Same message for unknown user and wrong password."""

    def __init__(self, message: str = "invalid username or password") -> None:
        super().__init__(message)


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid request"


def install_exception_handlers(app: FastAPI) -> None:
    """Register handlers so every failure reaches the client as {"error": message}."""

    @app.exception_handler(ServiceError)
    async def _service_error(_request: Request, exc: ServiceError) -> JSONResponse:
        if isinstance(exc, UnauthorizedError):
            return _error_response(exc.status_code, exc.message, {"WWW-Authenticate": "Bearer"})
        if exc.status_code >= 500:
            logger.error("Service failure: %s", exc.message)
            return _error_response(exc.status_code, "internal server error")
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def _http_error(_request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, _format_validation_errors(exc))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error")
