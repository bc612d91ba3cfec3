"""Global exception handlers: domain errors keep their status, everything else is a 500."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bloodline.core.errors import BloodlineError, InvalidInput

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(BloodlineError)
    async def bloodline_error_handler(request: Request, exc: BloodlineError):
        logger.warning(
            f"{exc.code}: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = sorted({
            ".".join(str(part) for part in err["loc"] if part != "body")
            for err in exc.errors()
        })
        error = InvalidInput(f"Invalid or missing fields: {', '.join(fields)}", fields)
        logger.warning(
            f"Validation error on {request.url.path}: {fields}",
            extra={"error_code": error.code, "path": request.url.path},
        )
        return JSONResponse(status_code=error.http_status, content=error.to_response())

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": "INTERNAL_ERROR", "message": "Something went wrong"}},
        )
