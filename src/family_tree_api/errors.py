"""
Error taxonomy for the API and the handlers that render it as JSON.

Every error body has a ``message`` key. Server errors also carry the
underlying error text under ``error``.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """Base class for errors raised by the services."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(status_code=type(self).status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(APIError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(APIError):
    """A unique field (username/email) is already taken."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(APIError):
    """Missing, invalid or expired token, or bad credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class NotFoundError(APIError):
    """Missing resource, or one the caller does not own."""

    status_code = status.HTTP_404_NOT_FOUND


class ServerError(APIError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.error = str(error) if error is not None else None


def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content: Dict[str, Any] = {"message": str(exc.detail)}
    if isinstance(exc, ServerError) and exc.error:
        content["error"] = exc.error
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    logger.debug("Rejected request %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request data.", "errors": errors},
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server error.", "error": str(exc)},
    )


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Render every error, expected or not, as a ``{"message": ...}`` JSON body."""
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
