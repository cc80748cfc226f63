"""
PhotoClick Relay — FastAPI Dependencies
=========================================

What:  Dependency functions that hand route handlers the process-wide objects
       create_app() stored on `app.state`.
Why:   Routes never import singletons; tests build an app with fakes and the
       same routes pick them up.
"""

import json
from typing import Any

from fastapi import Request

from photoclick.config import Settings
from photoclick.exceptions import ValidationError
from photoclick.services.dispatcher import ActionDispatcher


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> ActionDispatcher:
    return request.app.state.dispatcher


async def read_json_body(request: Request) -> Any:
    """Decoded JSON body; a body that is not JSON is a client error."""
    raw = await request.body()
    if not raw:
        raise ValidationError("Request body is empty.")
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationError("Request body is not valid JSON.")
