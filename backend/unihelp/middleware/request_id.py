"""
UniHelp Backend — Request ID Middleware
=========================================

What:  Tags every request with a short correlation id.
How:   Reuses a client-supplied `X-Request-ID` or generates 8 hex characters
       from a UUID, stores it in a ContextVar (for loggers) and on
       `request.state` (for exception handlers), and echoes it back in the
       `X-Request-ID` response header.

The same id appears in access logs, error logs and every error body, so a
user can quote it from an error message and support can find the request.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def current_request_id(request: Request) -> str:
    """Request id for this request, from state first, then the ContextVar."""
    return getattr(request.state, "request_id", None) or request_id_var.get("")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique ID to each request for tracing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
