"""
PhotoClick Relay — Sign-In Route Handlers
===========================================

What:  GET /api/config (OAuth client ID for the browser's sign-in button) and
       POST /api/login (verify a Google ID token, return the profile).
Who:   Called by the front end at page load and after Google Sign-In.

Both are thin: /api/login runs the same `authenticate` action the relay
accepts, so the two paths cannot drift apart.
"""

import logging

from fastapi import APIRouter, Depends, Request

from photoclick.config import Settings
from photoclick.dependencies import get_dispatcher, get_settings, read_json_body
from photoclick.exceptions import ConfigError, ValidationError
from photoclick.schemas.relay import (
    Action,
    ClientConfigResponse,
    ErrorResponse,
    UserProfile,
)
from photoclick.services.dispatcher import ActionDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.get(
    "/config",
    response_model=ClientConfigResponse,
    responses={500: {"description": "Client ID not configured", "model": ErrorResponse}},
    summary="Public client configuration",
)
async def client_config(settings: Settings = Depends(get_settings)) -> ClientConfigResponse:
    if not settings.google_client_id:
        raise ConfigError("GOOGLE_CLIENT_ID is not configured.")
    return ClientConfigResponse(client_id=settings.google_client_id)


@router.post(
    "/login",
    response_model=UserProfile,
    responses={
        400: {"description": "Token not provided", "model": ErrorResponse},
        500: {"description": "Token could not be verified", "model": ErrorResponse},
    },
    summary="Verify a Google ID token",
)
async def login(
    request: Request,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
) -> UserProfile:
    body = await read_json_body(request)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object.")

    # The action tag is fixed here; any "action" the client sent is ignored
    return await dispatcher.dispatch({**body, "action": Action.AUTHENTICATE.value})
