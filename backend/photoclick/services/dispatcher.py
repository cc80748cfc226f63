"""
PhotoClick Relay — Action Dispatcher
======================================

What:  Maps an `(action, payload)` pair to exactly one provider call and one
       normalized result, or a well-defined error.
Why:   The browser talks to a single relay endpoint; this is where its loosely
       shaped JSON becomes validated requests and provider output becomes the
       small payloads the front end renders.
How:   A dispatch table keyed by the closed `Action` enum. Each entry names the
       payload model, the message used when validation fails, and the handler.
       The table is checked for completeness at construction.
Who:   Built once in create_app(); called by the relay and auth routes.

Request Flow:
    body ──▶ parse_action ──▶ authorize (REQUIRE_AUTH) ──▶ validate payload
         ──▶ handler ──▶ ContentProvider / IdentityVerifier ──▶ result model

Error Mapping:
    missing/unknown action, bad payload → ValidationError   (400)
    bearer token missing/invalid        → UnauthorizedError (401)
    provider raised                     → ProviderError     (500, translated)
    provider returned nothing usable    → GenerationError   (500)
    login token unverifiable            → AuthError         (500)
    no API key, generation action       → ConfigError       (500)
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from photoclick.config import Settings
from photoclick.exceptions import (
    AuthError,
    ConfigError,
    GenerationError,
    PhotoClickError,
    ProviderError,
    UnauthorizedError,
    ValidationError,
)
from photoclick.schemas.relay import (
    Action,
    AnalyzeImageForTextPayload,
    AuthenticatePayload,
    CheckImageSubjectPayload,
    ContentPart,
    GenerateVariationPayload,
    GenerationConfig,
    GeneratePhotoshootPayload,
    ImagePayload,
    InlineData,
    PhotoshootResult,
    ProviderResponse,
    SubjectCheckResult,
    SubjectDetails,
    TextAnalysisResult,
    UserProfile,
    VariationResult,
)
from photoclick.services.provider_base import ContentProvider, IdentityVerifier

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[BaseModel]]

SUBJECT_PROMPT = (
    "Analyze this photo. Identify the category of the main person "
    "(man, woman, teenager, elderly_man, elderly_woman, child, other) "
    "and the type of their smile (teeth, closed, none)."
)

SUBJECT_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "category": {"type": "STRING"},
        "smile": {"type": "STRING"},
    },
    "required": ["category", "smile"],
}

IMAGE_OUTPUT = GenerationConfig(response_modalities=["IMAGE"])
SUBJECT_OUTPUT = GenerationConfig(
    response_mime_type="application/json",
    response_schema=SUBJECT_SCHEMA,
)


def translate_provider_error(exc: Exception, default_message: str) -> str:
    """
    Turn a provider exception into text the user can act on.

    Known causes (bad key, missing permission, safety block) get a fixed
    message; everything else falls back to the action's default.
    """
    message = str(exc) or ""
    if "API key not valid" in message or "API_KEY_INVALID" in message:
        return "The Google API key is invalid."
    lowered = message.lower()
    if "permission denied" in lowered or "permission_denied" in lowered:
        return "The API key does not have permission to use this model."
    if "safety" in lowered:
        return "The image was blocked by the safety system. Try a different photo."
    return default_message


def _field_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    return [
        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


class ActionDispatcher:
    """
    One instance per process. Holds the frozen settings and the two external
    clients by reference; keeps no per-request state.

    `provider` is None when no API key is configured: generation actions then
    fail with ConfigError while `authenticate` still works.
    """

    def __init__(
        self,
        settings: Settings,
        provider: Optional[ContentProvider],
        verifier: IdentityVerifier,
    ):
        self.settings = settings
        self.provider = provider
        self.verifier = verifier

        self._routes: Dict[Action, Tuple[Type[BaseModel], str, Handler]] = {
            Action.GENERATE_VARIATION: (
                GenerateVariationPayload,
                "Missing prompt or image data.",
                self.generate_variation,
            ),
            Action.CHECK_IMAGE_SUBJECT: (
                CheckImageSubjectPayload,
                "Missing image data.",
                self.check_image_subject,
            ),
            Action.ANALYZE_IMAGE_FOR_TEXT: (
                AnalyzeImageForTextPayload,
                "Missing image or prompt data.",
                self.analyze_image_for_text,
            ),
            Action.GENERATE_PHOTOSHOOT: (
                GeneratePhotoshootPayload,
                "Missing parts for generation.",
                self.generate_photoshoot,
            ),
            Action.AUTHENTICATE: (
                AuthenticatePayload,
                "Token not provided.",
                self.authenticate,
            ),
        }
        unhandled = [action.value for action in Action if action not in self._routes]
        if unhandled:
            raise RuntimeError(f"No handler registered for action(s): {', '.join(unhandled)}")

    # ── Entry points ──────────────────────────────────────────────────────

    @staticmethod
    def parse_action(raw: Any) -> Action:
        if raw is None or raw == "":
            raise ValidationError('Missing "action" in request body.', field="action")
        try:
            return Action(raw)
        except ValueError:
            raise ValidationError(f"Invalid action provided: {raw}", field="action")

    async def dispatch(self, body: Any, authorization: Optional[str] = None) -> BaseModel:
        """
        Run one relay request.

        Args:
            body: Decoded JSON body, `{"action": ..., **payload}`.
            authorization: Raw Authorization header, checked when REQUIRE_AUTH is on.

        Returns:
            The action's result model (serialize with `by_alias=True`).
        """
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")

        action = self.parse_action(body.get("action"))
        if action is not Action.AUTHENTICATE:
            await self.authorize(authorization)

        payload_model, missing_message, handler = self._routes[action]
        payload = {key: value for key, value in body.items() if key != "action"}
        request = self.validate_payload(payload_model, payload, missing_message)

        logger.info("Dispatching action %s", action.value)
        return await handler(request)

    @staticmethod
    def validate_payload(model: Type[BaseModel], payload: Dict[str, Any], message: str) -> Any:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(message, context={"fields": _field_errors(e)})

    async def authorize(self, authorization: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Bearer-token guard. A no-op unless REQUIRE_AUTH is on.

        Returns the verified claims, or None when the guard is off.
        """
        if not self.settings.require_auth:
            return None
        if not authorization or not authorization.startswith("Bearer "):
            raise UnauthorizedError("Authentication token is missing.")
        token = authorization[len("Bearer "):].strip()
        if not token:
            raise UnauthorizedError("Authentication token is missing.")

        claims = await self._verify(token)
        if not claims or not claims.get("email"):
            raise UnauthorizedError("Invalid token.")
        return claims

    # ── Action handlers ───────────────────────────────────────────────────

    async def generate_variation(self, payload: GenerateVariationPayload) -> VariationResult:
        response = await self._generate(
            self.settings.image_model,
            [ContentPart.from_image(payload.image), ContentPart.from_text(payload.prompt)],
            IMAGE_OUTPUT,
            "Could not generate the variation.",
        )
        image = self._require_image(response)
        return VariationResult(image_url=f"data:{image.mime_type};base64,{image.data}")

    async def check_image_subject(self, payload: CheckImageSubjectPayload) -> SubjectCheckResult:
        response = await self._generate(
            self.settings.text_model,
            [ContentPart.from_image(payload.image), ContentPart.from_text(SUBJECT_PROMPT)],
            SUBJECT_OUTPUT,
            "Could not analyze the image.",
        )
        text = response.text.strip()
        if not text:
            raise GenerationError(
                "Received an empty response from the AI.",
                context=self._candidate_context(response),
            )
        try:
            parsed = json.loads(text)
        except ValueError:
            raise GenerationError("The AI returned a response in an invalid format.")
        if not isinstance(parsed, dict):
            raise GenerationError("The AI returned a response in an invalid format.")
        try:
            details = SubjectDetails.model_validate(parsed)
        except PydanticValidationError as e:
            raise GenerationError(
                "The AI response is missing the subject category or smile.",
                context={"fields": _field_errors(e)},
            )
        return SubjectCheckResult(subject_details=details)

    async def analyze_image_for_text(self, payload: AnalyzeImageForTextPayload) -> TextAnalysisResult:
        response = await self._generate(
            self.settings.text_model,
            [ContentPart.from_image(payload.image), ContentPart.from_text(payload.analysis_prompt)],
            None,
            "Could not analyze the image.",
        )
        return TextAnalysisResult(text=response.text.strip())

    async def generate_photoshoot(self, payload: GeneratePhotoshootPayload) -> PhotoshootResult:
        response = await self._generate(
            self.settings.image_model,
            payload.parts,
            IMAGE_OUTPUT,
            "Could not generate the photoshoot.",
        )
        image = self._require_image(response)
        result = ImagePayload(base64=image.data, mime_type=image.mime_type)
        return PhotoshootResult(result_url=result.data_uri, generated_photoshoot_result=result)

    async def authenticate(self, payload: AuthenticatePayload) -> UserProfile:
        claims = await self._verify(payload.token)
        if not claims or not claims.get("email"):
            raise AuthError("Invalid token data.")
        logger.info("Verified sign-in for %s", claims["email"])
        return UserProfile(
            name=claims.get("name") or "",
            email=claims["email"],
            picture=claims.get("picture") or "",
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _generate(
        self,
        model: str,
        parts: List[ContentPart],
        config: Optional[GenerationConfig],
        default_message: str,
    ) -> ProviderResponse:
        if self.provider is None:
            logger.error("No provider configured: %s", "; ".join(self.settings.missing_required()))
            raise ConfigError("Server configuration is incomplete: the API key is not set.")
        try:
            return await self.provider.generate_content(model, parts, config)
        except PhotoClickError:
            raise
        except Exception as e:
            logger.error("Provider call to %s failed: %s", model, str(e))
            raise ProviderError(
                translate_provider_error(e, default_message),
                context={"errorType": type(e).__name__},
            )

    async def _verify(self, token: str) -> Optional[Dict[str, Any]]:
        if not self.settings.google_client_id:
            raise ConfigError("GOOGLE_CLIENT_ID is not configured.")
        try:
            return await self.verifier.verify(token, self.settings.google_client_id)
        except PhotoClickError:
            raise
        except Exception as e:
            logger.error("Identity verification failed: %s", str(e))
            raise AuthError(
                "Could not verify the sign-in token.",
                context={"errorType": type(e).__name__},
            )

    @staticmethod
    def _candidate_context(response: ProviderResponse) -> Dict[str, Any]:
        candidate = response.first_candidate
        if candidate is None:
            return {"finishReason": None, "safetyRatings": []}
        return {
            "finishReason": candidate.finish_reason,
            "safetyRatings": candidate.safety_ratings,
        }

    def _require_image(self, response: ProviderResponse) -> InlineData:
        image = response.first_inline_image()
        if image is None:
            context = self._candidate_context(response)
            logger.warning(
                "No image in model response (finish_reason=%s)",
                context["finishReason"],
            )
            raise GenerationError("Image not found in model response.", context=context)
        return image
