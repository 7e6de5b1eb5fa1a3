"""Exception handlers that turn ``AppError`` into JSON responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from libs.common.errors import AppError, PersistenceError
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


def _error_body(code: str, detail: str, details: dict | None = None) -> dict:
    body = {"detail": detail, "code": code}
    if details:
        body["details"] = details
    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error(
            "Persistence failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, "A storage error occurred"),
        )

    logger.info(
        "%s on %s %s: %s",
        exc.code,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.details),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_error", "Internal server error"),
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register the application's exception handlers."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
