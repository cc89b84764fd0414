"""Middleware that tags every request with an X-Request-ID.

The id is bound into structlog contextvars so every log line written while
the request is handled carries the same ``request_id``.
"""
from __future__ import annotations

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from structlog.contextvars import bind_contextvars, clear_contextvars

# Accept caller-supplied ids only when they look like an opaque token
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuse a well-formed inbound request id, otherwise mint a uuid4 hex.

    The id is returned in the response header and exposed on ``request.state``.
    """

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:  # type: ignore[override]
        inbound = request.headers.get(self.header_name)
        if inbound and REQUEST_ID_PATTERN.match(inbound):
            request_id = inbound
        else:
            request_id = uuid.uuid4().hex

        bind_contextvars(request_id=request_id)
        request.state.request_id = request_id

        try:
            response: Response = await call_next(request)
        finally:
            # Contextvars must not leak into the next request
            clear_contextvars()

        response.headers[self.header_name] = request_id
        return response
