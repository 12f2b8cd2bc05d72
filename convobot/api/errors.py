"""Exception handlers rendering errors as ``{"error": message}``."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from convobot.exceptions import ConvoBotError

logger = logging.getLogger(__name__)


async def convobot_error_handler(request: Request, exc: ConvoBotError) -> JSONResponse:
    status_code = exc.http_status or 500
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        # Storage and internal details stay in the logs
        message = "Internal server error"
    else:
        message = exc.message
    return JSONResponse(status_code=status_code, content={"error": message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "Invalid request")
    message = f"{location}: {detail}" if location else detail
    return JSONResponse(status_code=400, content={"error": message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Auth failures and unknown routes use the same body shape as application errors
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConvoBotError, convobot_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
