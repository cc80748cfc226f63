"""
PhotoClick Relay — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the contract between browser, relay and provider.
Why:   Each action's payload is an explicit structure with its required fields
       stated up front, validated before any external call.
How:   All wire models use camelCase aliases (`mimeType`, `inlineData`) to match
       the browser's JSON; snake_case is accepted on input as well.
Who:   Built by ActionDispatcher from the request body; serialized by the relay
       route with `model_dump(by_alias=True)`.
When:  Constructed at request start, discarded when the response is sent.
"""

import base64
import binascii
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_base64(value: str) -> str:
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("must be standard base64-encoded data")
    return value


Base64Str = Annotated[str, Field(min_length=1), AfterValidator(_require_base64)]


# ══════════════════════════════════════════════════════════════════════════
# Actions
# ══════════════════════════════════════════════════════════════════════════


class Action(str, Enum):
    """The closed set of operations the relay accepts in the `action` field."""

    GENERATE_VARIATION = "generateVariation"
    CHECK_IMAGE_SUBJECT = "checkImageSubject"
    ANALYZE_IMAGE_FOR_TEXT = "analyzeImageForText"
    GENERATE_PHOTOSHOOT = "generatePhotoshoot"
    AUTHENTICATE = "authenticate"


# ══════════════════════════════════════════════════════════════════════════
# Content parts: shared by inbound payloads and provider responses
# ══════════════════════════════════════════════════════════════════════════


class ImagePayload(CamelModel):
    """An image as the browser sends it: raw base64 (no data-URI prefix) + MIME type."""

    base64: Base64Str = Field(description="Base64-encoded image bytes")
    mime_type: str = Field(min_length=1, description="e.g. image/png")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


class InlineData(CamelModel):
    data: Base64Str = Field(description="Base64-encoded bytes")
    mime_type: str = Field(min_length=1)


class ContentPart(CamelModel):
    """One unit of a multi-modal request or response: inline data XOR text."""

    inline_data: Optional[InlineData] = None
    text: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ContentPart":
        if (self.inline_data is None) == (self.text is None):
            raise ValueError("a part must carry exactly one of inlineData or text")
        return self

    @classmethod
    def from_image(cls, image: ImagePayload) -> "ContentPart":
        return cls(inline_data=InlineData(data=image.base64, mime_type=image.mime_type))

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(text=text)


class GenerationConfig(CamelModel):
    """Provider-agnostic output constraints for one generate call."""

    response_modalities: Optional[List[str]] = None
    response_mime_type: Optional[str] = None
    # Object schema in the provider's OpenAPI subset, e.g.
    # {"type": "OBJECT", "properties": {...}, "required": [...]}
    response_schema: Optional[Dict[str, Any]] = None


class CandidateContent(CamelModel):
    parts: List[ContentPart] = Field(default_factory=list)


class Candidate(CamelModel):
    content: CandidateContent = Field(default_factory=CandidateContent)
    finish_reason: Optional[str] = None
    safety_ratings: List[Dict[str, Any]] = Field(default_factory=list)


class ProviderResponse(CamelModel):
    """
    What the ContentProvider returns. Only the first candidate is ever read:
    its first inline-data part (image actions) or its text (text actions).
    """

    candidates: List[Candidate] = Field(default_factory=list)

    @property
    def first_candidate(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    def first_inline_image(self) -> Optional[InlineData]:
        candidate = self.first_candidate
        if candidate is None:
            return None
        for part in candidate.content.parts:
            if part.inline_data is not None:
                return part.inline_data
        return None

    @property
    def text(self) -> str:
        candidate = self.first_candidate
        if candidate is None:
            return ""
        return "".join(part.text for part in candidate.content.parts if part.text is not None)


# ══════════════════════════════════════════════════════════════════════════
# Inbound payloads — one per action
# ══════════════════════════════════════════════════════════════════════════


class GenerateVariationPayload(CamelModel):
    prompt: str = Field(min_length=1)
    image: ImagePayload


class CheckImageSubjectPayload(CamelModel):
    image: ImagePayload


class AnalyzeImageForTextPayload(CamelModel):
    image: ImagePayload
    analysis_prompt: str = Field(min_length=1)


class GeneratePhotoshootPayload(CamelModel):
    parts: List[ContentPart] = Field(min_length=1)


class AuthenticatePayload(CamelModel):
    token: str = Field(min_length=1)


# ══════════════════════════════════════════════════════════════════════════
# Outbound payloads
# ══════════════════════════════════════════════════════════════════════════


class VariationResult(CamelModel):
    image_url: str = Field(description="data: URI of the generated image")


class SubjectDetails(CamelModel):
    """The model's JSON object as parsed; keys beyond these two are passed through."""

    model_config = ConfigDict(extra="allow")

    category: str
    smile: str


class SubjectCheckResult(CamelModel):
    subject_details: SubjectDetails


class TextAnalysisResult(CamelModel):
    text: str


class PhotoshootResult(CamelModel):
    """
    The data URI for display, plus the raw base64/MIME pair so the browser can
    feed the bytes into the next request without re-decoding the URI.
    """

    result_url: str
    generated_photoshoot_result: ImagePayload


class UserProfile(CamelModel):
    name: str
    email: str
    picture: str


class ClientConfigResponse(CamelModel):
    client_id: str


class LoginRequest(CamelModel):
    token: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Error / health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(CamelModel):
    """
    Error body for every non-2xx answer.

    Example:
        {
            "error": "Missing prompt or image data.",
            "details": {"fields": [{"loc": "image", "msg": "Field required"}]},
            "requestId": "1a2b3c4d"
        }
    """

    error: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(default=None)
    request_id: Optional[str] = Field(default=None)


class HealthResponse(CamelModel):
    status: str = Field(description="healthy or degraded")
    version: str
    provider: str = Field(description="available, unavailable or unconfigured")
    uptime_seconds: float
