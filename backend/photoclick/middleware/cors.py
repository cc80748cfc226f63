"""
PhotoClick Relay — Permissive CORS Middleware
===============================================

What:  Stamps the configured CORS headers on every response and answers every
       OPTIONS request itself with an empty 200.
Why:   The browser front end (and the serverless deployment in front of it)
       may be served from any origin. Starlette's CORSMiddleware only adds
       headers when the request carries an Origin header and only treats an
       OPTIONS as preflight when Access-Control-Request-Method is present; the
       relay's contract is unconditional.
Who:   Applied to every request via Starlette middleware.
When:  Innermost of the project middleware, so error responses produced by
       the exception handlers are stamped too.
"""

import logging
from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings.cors_headers):
        Access-Control-Allow-Origin:  CORS_ALLOW_ORIGIN  (default "*")
        Access-Control-Allow-Methods: CORS_ALLOW_METHODS (default "POST, OPTIONS")
        Access-Control-Allow-Headers: CORS_ALLOW_HEADERS (default "Content-Type, Authorization")
    """

    def __init__(self, app, headers: Dict[str, str], **kwargs):
        super().__init__(app, **kwargs)
        self.headers = dict(headers)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS":
            logger.debug("Answering preflight for %s", request.url.path)
            return Response(status_code=200, headers=self.headers)

        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response
