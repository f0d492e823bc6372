"""TagTrack IMS — API error envelope and exception handlers."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from tagtrack.core.errors import (
    InsufficientStock,
    IntegrityViolation,
    InvalidInstanceSelection,
    InvalidTagState,
    InventoryError,
    NotFound,
    NotInTag,
    TagNotFound,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[InventoryError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    TagNotFound: status.HTTP_404_NOT_FOUND,
    InsufficientStock: status.HTTP_409_CONFLICT,
    InvalidTagState: status.HTTP_409_CONFLICT,
    InvalidInstanceSelection: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotInTag: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ValidationFailed: status.HTTP_422_UNPROCESSABLE_ENTITY,
    IntegrityViolation: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(code: str, message: str, details: dict | None = None, meta: dict | None = None) -> dict:
    return {
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "meta": meta,
    }


def status_for(exc: InventoryError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_400_BAD_REQUEST


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content=error_response(exc.code, exc.message, exc.details))


async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    # Version check failed: another request changed the same inventory row or instance first.
    logger.warning("Concurrent update rejected on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_response("CONCURRENT_UPDATE", "Stock changed concurrently; retry the request"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
