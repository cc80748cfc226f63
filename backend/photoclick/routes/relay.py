"""
PhotoClick Relay — Relay Route Handler
========================================

What:  Handles POST /api/generate, the single endpoint the browser uses for
       every generation action.
How:   Reads the JSON body, hands it to ActionDispatcher, serializes the result
       model by alias with status 200.
Who:   Called by RelayApiClient (and the browser's equivalent helper).

Request Flow:
    1. Client sends {"action": "...", ...payload} as JSON
    2. Body is decoded (400 if not JSON)
    3. ActionDispatcher validates, calls the provider once, shapes the result
    4. Return 200 with the action-specific JSON
    5. On error: domain errors reach the global handlers; anything else is
       wrapped in RelayError here so the transport never sees a raw exception

Other methods:
    OPTIONS is answered by CORSHeadersMiddleware (200, empty body).
    Anything else gets 405 from the router.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from photoclick.dependencies import get_dispatcher, read_json_body
from photoclick.exceptions import PhotoClickError, RelayError
from photoclick.schemas.relay import ErrorResponse
from photoclick.services.dispatcher import ActionDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Relay"])


@router.post(
    "/generate",
    responses={
        200: {"description": "Action-specific result"},
        400: {"description": "Unknown action or missing fields", "model": ErrorResponse},
        401: {"description": "Bearer token missing or invalid", "model": ErrorResponse},
        500: {"description": "Generation or server error", "model": ErrorResponse},
    },
    summary="Relay one generation action to the AI provider",
    description=(
        "Body: {\"action\": one of generateVariation, checkImageSubject, "
        "analyzeImageForText, generatePhotoshoot, authenticate, ...payload}."
    ),
)
async def relay(
    request: Request,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
    authorization: Optional[str] = Header(default=None),
) -> JSONResponse:
    body = await read_json_body(request)

    try:
        result = await dispatcher.dispatch(body, authorization=authorization)
    except PhotoClickError:
        raise
    except Exception as e:
        logger.error("Unhandled relay failure: %s", str(e), exc_info=True)
        raise RelayError(
            str(e) or "An unknown server error occurred.",
            context={"errorType": type(e).__name__},
        )

    return JSONResponse(status_code=200, content=result.model_dump(mode="json", by_alias=True))
