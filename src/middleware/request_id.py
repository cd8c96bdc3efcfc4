"""Request ID tracing middleware — adds X-Request-ID to every response."""
from __future__ import annotations

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Read by the logging filter so every record carries the current request id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_MAX_LEN = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Honor a client-supplied X-Request-ID (if sane) or mint a UUID4."""

    async def dispatch(self, request: Request, call_next) -> Response:
        rid = request.headers.get("x-request-id", "")
        if not rid or len(rid) > _MAX_LEN or not rid.isprintable():
            rid = str(uuid.uuid4())
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
