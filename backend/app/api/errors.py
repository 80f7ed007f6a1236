"""Error bodies shared by every endpoint: ``{"error": "<message>"}``."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger
from app.models.chat import ErrorResponse

logger = get_logger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body."

    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _describe_validation_error(exc)
    logger.info("http.request.invalid", path=request.url.path, error=message)
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("http.request.failed", path=request.url.path, status=exc.status_code, error=exc.detail)
    return error_response(exc.status_code, str(exc.detail))


def register_error_handlers(application: FastAPI) -> None:
    """Render request and HTTP errors with the error body the chat client reads."""

    application.add_exception_handler(RequestValidationError, _request_validation_handler)
    application.add_exception_handler(StarletteHTTPException, _http_exception_handler)
