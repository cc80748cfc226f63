"""
PhotoClick Relay — Google Gemini Content Provider
===================================================

What:  Concrete ContentProvider on the google-genai SDK.
Why:   The relay's generation actions need image-modality output and
       schema-constrained JSON, both exposed by `generate_content`.
How:   Converts the relay's ContentPart/GenerationConfig models to SDK types,
       awaits `client.aio.models.generate_content`, converts the SDK response
       back into a ProviderResponse (inline bytes re-encoded as base64).
Who:   Instantiated once in create_app(); called by ActionDispatcher.
When:  Once per generation request. No retries: a failed call is reported
       to the caller as-is, the browser decides whether to try again.
"""

import base64
import logging
import time
import uuid
from typing import Any, List, Optional

from google import genai
from google.genai import types

from photoclick.config import Settings
from photoclick.schemas.relay import (
    Candidate,
    CandidateContent,
    ContentPart,
    GenerationConfig,
    InlineData,
    ProviderResponse,
)
from photoclick.services.provider_base import ContentProvider

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Relay models → SDK types
# ══════════════════════════════════════════════════════════════════════════


def to_sdk_part(part: ContentPart) -> types.Part:
    """Inline parts are decoded to bytes; the SDK re-encodes on the wire."""
    if part.inline_data is not None:
        return types.Part.from_bytes(
            data=base64.b64decode(part.inline_data.data),
            mime_type=part.inline_data.mime_type,
        )
    return types.Part.from_text(text=part.text or "")


def to_sdk_config(config: Optional[GenerationConfig]) -> Optional[types.GenerateContentConfig]:
    if config is None:
        return None
    kwargs: dict = {}
    if config.response_modalities:
        kwargs["response_modalities"] = list(config.response_modalities)
    if config.response_mime_type:
        kwargs["response_mime_type"] = config.response_mime_type
    if config.response_schema:
        kwargs["response_schema"] = types.Schema.model_validate(config.response_schema)
    return types.GenerateContentConfig(**kwargs)


# ══════════════════════════════════════════════════════════════════════════
# SDK response → relay models
# ══════════════════════════════════════════════════════════════════════════


def _convert_candidate(candidate: Any) -> Candidate:
    parts: List[ContentPart] = []
    content = getattr(candidate, "content", None)
    for part in (getattr(content, "parts", None) or []):
        # Thought summaries are model reasoning, not output
        if getattr(part, "thought", None):
            continue
        blob = getattr(part, "inline_data", None)
        if blob is not None and blob.data:
            parts.append(ContentPart(inline_data=InlineData(
                data=base64.b64encode(blob.data).decode("ascii"),
                mime_type=blob.mime_type or "application/octet-stream",
            )))
        elif getattr(part, "text", None) is not None:
            parts.append(ContentPart(text=part.text))

    finish_reason = getattr(candidate, "finish_reason", None)
    if finish_reason is not None:
        finish_reason = getattr(finish_reason, "value", str(finish_reason))

    safety_ratings = [
        rating.model_dump(mode="json", exclude_none=True)
        for rating in (getattr(candidate, "safety_ratings", None) or [])
    ]

    return Candidate(
        content=CandidateContent(parts=parts),
        finish_reason=finish_reason,
        safety_ratings=safety_ratings,
    )


def to_provider_response(response: Any) -> ProviderResponse:
    candidates = getattr(response, "candidates", None) or []
    return ProviderResponse(candidates=[_convert_candidate(c) for c in candidates])


# ══════════════════════════════════════════════════════════════════════════
# Gemini Content Provider
# ══════════════════════════════════════════════════════════════════════════


class GeminiContentProvider(ContentProvider):
    """
    Google Gemini implementation of the ContentProvider contract.

    Architecture:
        - One instance per process, created from the frozen Settings
        - Holds a single `genai.Client`; the async surface (`client.aio`) is
          safe to share across concurrent requests
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client = genai.Client(api_key=settings.gemini_api_key)
        logger.info(
            "GeminiContentProvider initialized with image_model=%s, text_model=%s",
            settings.image_model,
            settings.text_model,
        )

    async def generate_content(
        self,
        model: str,
        parts: List[ContentPart],
        config: Optional[GenerationConfig] = None,
    ) -> ProviderResponse:
        call_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        contents = [types.Content(role="user", parts=[to_sdk_part(p) for p in parts])]
        sdk_config = to_sdk_config(config)

        logger.info("[%s] Calling %s with %d part(s)", call_id, model, len(parts))
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=sdk_config,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] %s call failed after %.0fms: %s",
                call_id,
                model,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        result = to_provider_response(response)
        logger.info(
            "[%s] %s completed in %.0fms with %d candidate(s)",
            call_id,
            model,
            duration_ms,
            len(result.candidates),
        )
        return result

    async def health_check(self) -> bool:
        """
        Check if the Gemini API is reachable.

        How:     Fetches the text model's metadata (no token cost).
        Returns: True if reachable and authenticated, False otherwise.
        """
        try:
            await self.client.aio.models.get(model=self.settings.text_model)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
