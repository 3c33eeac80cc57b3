"""
API Error Handlers

Render ``CommerceError`` subclasses as JSON with their HTTP status.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from partshop.commerce.exceptions import CommerceError, ResourceExhaustedError

logger = structlog.get_logger(__name__)


async def commerce_error_handler(request: Request, exc: CommerceError) -> JSONResponse:
    headers = {}
    if isinstance(exc, ResourceExhaustedError):
        headers["Retry-After"] = str(exc.retry_after_seconds)

    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        path=request.url.path,
        error_code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CommerceError, commerce_error_handler)
