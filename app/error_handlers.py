"""Global exception handlers mapping domain errors onto HTTP responses."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.errors import MalformedInput, StoreUnavailable, TimeTrackingError, ValidationFailed


logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "1"


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "query")
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(TimeTrackingError)
    async def time_tracking_error_handler(request: Request, exc: TimeTrackingError):
        """Render domain and store errors as a structured envelope."""
        if isinstance(exc, StoreUnavailable):
            logger.error(
                exc.message,
                extra={"error_kind": exc.kind, "path": request.url.path},
            )
        else:
            logger.info(
                exc.message,
                extra={"error_kind": exc.kind, "path": request.url.path},
            )

        headers = None
        if exc.http_status == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        elif exc.retryable:
            headers = {"Retry-After": RETRY_AFTER_SECONDS}

        return JSONResponse(
            status_code=exc.http_status,
            content=exc.to_response(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        """Unparseable bodies are MalformedInput; bad query values are ValidationFailed."""
        errors = exc.errors()
        if any(error.get("loc", ("",))[0] == "body" for error in errors):
            error: TimeTrackingError = MalformedInput("Request body is not valid JSON")
        else:
            error = ValidationFailed([_describe(error) for error in errors])

        logger.info(error.message, extra={"error_kind": error.kind, "path": request.url.path})
        return JSONResponse(status_code=error.http_status, content=error.to_response())
