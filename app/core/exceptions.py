"""Exception handlers rendering errors as ``{"message": ...}`` JSON bodies."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.vending.errors import StorageUnavailable, VendError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register the vend error handlers with the FastAPI application."""

    @app.exception_handler(VendError)
    async def vend_error_handler(request: Request, exc: VendError) -> JSONResponse:
        if exc.http_status >= 500:
            retryable = not (
                isinstance(exc, StorageUnavailable) and exc.after_issuance
            )
            logger.error(
                f"Vend failed on {request.url.path}: {type(exc).__name__}: "
                f"{exc.message} (retryable={retryable})"
            )
        else:
            logger.warning(
                f"Vend rejected on {request.url.path}: {type(exc).__name__}: {exc.message}"
            )
        return JSONResponse(status_code=exc.http_status, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = [".".join(str(loc) for loc in err["loc"]) for err in exc.errors()]
        logger.warning(f"Request validation failed on {request.url.path}: {fields}")
        return JSONResponse(
            status_code=400,
            content={"message": f"Invalid request: {', '.join(fields) or 'body'}."},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"message": "An unexpected error occurred during vending."},
        )
