"""API error handling: BillingError and storage failures to JSON responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from rentbill.errors import BillingError, error_response

logger = logging.getLogger(__name__)


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Surface domain errors verbatim with their HTTP status."""
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log storage failures and answer without internal detail."""
    logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "internal_error", "message": "Operation failed, please retry"}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillingError, billing_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
