"""
PhotoClick Relay — Request Logging Middleware
===============================================

What:  One structured log line per HTTP request/response.
Why:   Relay calls are slow (image generation takes seconds); status and
       duration per request are the first thing to look at when users report
       timeouts.
How:   Logs on completion with duration and size, correlated by the
       request ID from RequestIDMiddleware.

What we log vs what we DON'T log (privacy):
    Log:       method, path, status, duration, IP, request ID
    Don't log: request body (user photos), Authorization header, ID tokens
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from photoclick.middleware.request_id import request_id_var

logger = logging.getLogger("photoclick.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status code, duration in milliseconds and response size.
    OPTIONS and /health are not logged.

    Typical durations:
        - POST /api/generate (checkImageSubject): 1-4s
        - POST /api/generate (generatePhotoshoot): 10-60s
    """

    # Probes and preflights carry no payload worth a log line
    quiet_paths = frozenset({"/health"})

    @staticmethod
    def _level_for(status: int) -> int:
        if status >= 500:
            return logging.ERROR
        if status >= 400:
            return logging.WARNING
        return logging.INFO

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or request.url.path in self.quiet_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        # Data-URI responses run to megabytes; size explains most slow answers
        size = response.headers.get("content-length", "-")
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            self._level_for(response.status_code),
            "%s %s %d %.1fms %sB [%s] from %s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            size,
            request_id_var.get(""),
            client_ip,
        )
        return response
