"""
PhotoClick Relay — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Reports whether the provider is configured and reachable.

Status levels:
    - healthy:   provider configured and reachable
    - degraded:  provider unconfigured or unreachable; the relay still answers,
                 generation requests will fail with 500
"""

import logging
import time

from fastapi import APIRouter, Request

from photoclick import __version__
from photoclick.schemas.relay import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    provider = request.app.state.provider
    provider_status = "available"
    overall = "healthy"

    if provider is None:
        provider_status = "unconfigured"
        overall = "degraded"
    else:
        try:
            if not await provider.health_check():
                provider_status = "unavailable"
                overall = "degraded"
        except Exception as e:
            provider_status = "unavailable"
            overall = "degraded"
            logger.warning("Health check: provider unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        provider=provider_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
