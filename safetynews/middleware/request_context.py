"""
Per-request correlation for logs.

A caller-supplied X-Request-ID is reused when it looks like an identifier;
anything else is replaced by a fresh hex id. The id is bound into structlog
contextvars for the lifetime of the request and echoed on the response.
"""

import re
import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
_QUIET_PATHS = frozenset({"/health"})


def resolve_request_id(header_value: str | None) -> str:
    if header_value and _REQUEST_ID.match(header_value):
        return header_value
    return uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=path)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        log = logger.debug if path in _QUIET_PATHS else logger.info
        log("http_request", status=response.status_code, duration_ms=duration_ms)
        return response
