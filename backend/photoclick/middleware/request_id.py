"""
PhotoClick Relay — Request ID Middleware
==========================================

What:  Assigns a short ID to each incoming request and echoes it back.
Why:   Error bodies carry `requestId`, so a user-reported failure can be
       matched to the server log line and the provider call it triggered.
How:   Reuses the client's X-Request-ID if sent, otherwise generates one;
       stores it in a ContextVar and in request.state.
When:  Outermost project middleware (runs before all other processing).
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


# Client IDs end up in log lines and error bodies
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID when it is short and plain
           (letters, digits, `.`, `_`, `-`; at most 64 characters)
        2. Otherwise generate an 8-character hex ID
        3. Bind it to `request_id_var` for the request, then restore it
        4. Return it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if _CLIENT_ID_PATTERN.match(supplied) else new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
