"""
Global Error Handler Middleware.

Catches unhandled exceptions and returns structured JSON:

    {"error": "human-readable message", "error_id": "uuid", "status": 500}

Stack traces and exception details stay in the server log, keyed by
error_id. An unavailable decision service maps to 503; everything else
is a generic 500.
"""

import traceback
import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from safetynews.config import settings
from safetynews.exceptions import DecisionServiceUnavailable

logger = structlog.get_logger(__name__)

GENERIC_MESSAGE = "An internal error occurred. Please try again later."
UNAVAILABLE_MESSAGE = "The decision service is temporarily unavailable. Please try again later."


def error_status(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, DecisionServiceUnavailable):
        return 503, UNAVAILABLE_MESSAGE
    return getattr(exc, "status_code", 500), GENERIC_MESSAGE


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions escaping a route into the JSON error body."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid.uuid4())
            status_code, message = error_status(exc)

            logger.error(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                status=status_code,
                error=str(exc),
                traceback=traceback.format_exc(),
            )

            body: dict = {"error": message, "error_id": error_id, "status": status_code}
            if settings.debug:
                body["debug_hint"] = type(exc).__name__
            return JSONResponse(status_code=status_code, content=body)
