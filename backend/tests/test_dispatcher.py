"""
PhotoClick Relay — Action Dispatcher Unit Tests
=================================================

What:  Tests for ActionDispatcher with a fake provider and a fake verifier.
Why:   The dispatcher is where validation, provider calls and result shaping
       meet; every rule the browser relies on is checked here.
How:   Calls dispatch() directly with decoded JSON bodies.

What we test:
    ✅ Missing fields and unknown actions fail with 400 before any provider call
    ✅ Image actions return data URIs built from the first inline image
    ✅ Subject check parses the model's JSON and rejects malformed output
    ✅ Provider exceptions are translated into user-facing messages
    ✅ Sign-in and the optional bearer-token guard
"""

import pytest

from photoclick.exceptions import (
    AuthError,
    ConfigError,
    GenerationError,
    ProviderError,
    UnauthorizedError,
    ValidationError,
)
from photoclick.schemas.relay import Action, ProviderResponse
from photoclick.services.dispatcher import (
    IMAGE_OUTPUT,
    SUBJECT_OUTPUT,
    ActionDispatcher,
    translate_provider_error,
)

from conftest import (
    CLIENT_ID,
    FakeContentProvider,
    FakeIdentityVerifier,
    image_response,
    make_settings,
    text_response,
)


def dump(result) -> dict:
    return result.model_dump(mode="json", by_alias=True)


class TestActionParsing:
    """Tests for the action tag and body shape checks."""

    @pytest.mark.asyncio
    async def test_missing_action(self, dispatcher, fake_provider):
        with pytest.raises(ValidationError) as exc_info:
            await dispatcher.dispatch({"prompt": "x"})
        assert exc_info.value.message == 'Missing "action" in request body.'
        assert exc_info.value.status_code == 400
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_unknown_action_never_reaches_provider(self, dispatcher, fake_provider):
        with pytest.raises(ValidationError) as exc_info:
            await dispatcher.dispatch({"action": "deleteEverything"})
        assert exc_info.value.message == "Invalid action provided: deleteEverything"
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_non_object_body(self, dispatcher):
        with pytest.raises(ValidationError):
            await dispatcher.dispatch(["generateVariation"])

    def test_every_action_has_a_handler(self, dispatcher):
        assert set(dispatcher._routes) == set(Action)


class TestMissingFields:
    """Omitting a required field yields 400 and no provider call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body, message", [
        ({"action": "generateVariation", "image": {"base64": "AAAA", "mimeType": "image/png"}},
         "Missing prompt or image data."),
        ({"action": "generateVariation", "prompt": "make it blue"},
         "Missing prompt or image data."),
        ({"action": "generateVariation", "prompt": "", "image": {"base64": "AAAA", "mimeType": "image/png"}},
         "Missing prompt or image data."),
        ({"action": "checkImageSubject"},
         "Missing image data."),
        ({"action": "checkImageSubject", "image": {"mimeType": "image/png"}},
         "Missing image data."),
        ({"action": "analyzeImageForText", "image": {"base64": "AAAA", "mimeType": "image/png"}},
         "Missing image or prompt data."),
        ({"action": "analyzeImageForText", "analysisPrompt": "describe"},
         "Missing image or prompt data."),
        ({"action": "generatePhotoshoot"},
         "Missing parts for generation."),
        ({"action": "generatePhotoshoot", "parts": []},
         "Missing parts for generation."),
    ])
    async def test_rejected_before_provider_call(self, dispatcher, fake_provider, body, message):
        with pytest.raises(ValidationError) as exc_info:
            await dispatcher.dispatch(body)
        assert exc_info.value.message == message
        assert exc_info.value.context["fields"]
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_undecodable_base64_is_rejected(self, dispatcher, fake_provider):
        body = {
            "action": "checkImageSubject",
            "image": {"base64": "not base64!", "mimeType": "image/png"},
        }
        with pytest.raises(ValidationError):
            await dispatcher.dispatch(body)
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_part_with_both_image_and_text_is_rejected(self, dispatcher, fake_provider):
        body = {
            "action": "generatePhotoshoot",
            "parts": [{"text": "hi", "inlineData": {"data": "AAAA", "mimeType": "image/png"}}],
        }
        with pytest.raises(ValidationError):
            await dispatcher.dispatch(body)
        assert fake_provider.calls == []


class TestGenerateVariation:

    @pytest.mark.asyncio
    async def test_returns_exact_data_uri(self, dispatcher, fake_provider, sample_image):
        result = await dispatcher.dispatch({
            "action": "generateVariation",
            "prompt": "make it blue",
            "image": sample_image,
        })
        assert dump(result) == {"imageUrl": "data:image/png;base64,AAAA"}

    @pytest.mark.asyncio
    async def test_sends_image_then_prompt_to_image_model(
        self, dispatcher, fake_provider, sample_image, test_settings
    ):
        await dispatcher.dispatch({
            "action": "generateVariation",
            "prompt": "make it blue",
            "image": sample_image,
        })
        assert len(fake_provider.calls) == 1
        call = fake_provider.calls[0]
        assert call["model"] == test_settings.image_model
        assert call["config"] == IMAGE_OUTPUT
        assert call["parts"][0].inline_data.data == "AAAA"
        assert call["parts"][0].inline_data.mime_type == "image/png"
        assert call["parts"][1].text == "make it blue"

    @pytest.mark.asyncio
    async def test_no_inline_image_is_generation_error(self, dispatcher, fake_provider, sample_image):
        fake_provider.response = text_response("I cannot draw that.", finish_reason="SAFETY")
        with pytest.raises(GenerationError) as exc_info:
            await dispatcher.dispatch({
                "action": "generateVariation",
                "prompt": "make it blue",
                "image": sample_image,
            })
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Image not found in model response."
        assert exc_info.value.context["finishReason"] == "SAFETY"

    @pytest.mark.asyncio
    async def test_no_candidates_is_generation_error(self, dispatcher, fake_provider, sample_image):
        fake_provider.response = ProviderResponse(candidates=[])
        with pytest.raises(GenerationError):
            await dispatcher.dispatch({
                "action": "generateVariation",
                "prompt": "make it blue",
                "image": sample_image,
            })


class TestCheckImageSubject:

    @pytest.mark.asyncio
    async def test_parses_subject_json(self, dispatcher, fake_provider, sample_image):
        fake_provider.response = text_response('{"category":"man","smile":"teeth"}')
        result = await dispatcher.dispatch({"action": "checkImageSubject", "image": sample_image})
        assert dump(result) == {"subjectDetails": {"category": "man", "smile": "teeth"}}

    @pytest.mark.asyncio
    async def test_uses_text_model_with_json_schema(
        self, dispatcher, fake_provider, sample_image, test_settings
    ):
        fake_provider.response = text_response('{"category":"woman","smile":"none"}')
        await dispatcher.dispatch({"action": "checkImageSubject", "image": sample_image})
        call = fake_provider.calls[0]
        assert call["model"] == test_settings.text_model
        assert call["config"] == SUBJECT_OUTPUT
        assert call["config"].response_schema["required"] == ["category", "smile"]

    @pytest.mark.asyncio
    async def test_extra_keys_are_passed_through(self, dispatcher, fake_provider, sample_image):
        fake_provider.response = text_response('{"category":"man","smile":"teeth","glasses":true}')
        result = await dispatcher.dispatch({"action": "checkImageSubject", "image": sample_image})
        assert dump(result) == {
            "subjectDetails": {"category": "man", "smile": "teeth", "glasses": True},
        }

    @pytest.mark.asyncio
    async def test_is_idempotent(self, dispatcher, fake_provider, sample_image):
        fake_provider.response = text_response('{"category":"child","smile":"closed"}')
        body = {"action": "checkImageSubject", "image": sample_image}
        first = dump(await dispatcher.dispatch(body))
        second = dump(await dispatcher.dispatch(body))
        assert first == second

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text, message", [
        ("not json", "The AI returned a response in an invalid format."),
        ('["man", "teeth"]', "The AI returned a response in an invalid format."),
        ('{"category":"man"}', "The AI response is missing the subject category or smile."),
        ("   ", "Received an empty response from the AI."),
    ])
    async def test_malformed_model_output(self, dispatcher, fake_provider, sample_image, text, message):
        fake_provider.response = text_response(text)
        with pytest.raises(GenerationError) as exc_info:
            await dispatcher.dispatch({"action": "checkImageSubject", "image": sample_image})
        assert exc_info.value.message == message


class TestAnalyzeImageForText:

    @pytest.mark.asyncio
    async def test_returns_stripped_text(self, dispatcher, fake_provider, sample_image):
        fake_provider.response = text_response("  A cat on a sofa.\n")
        result = await dispatcher.dispatch({
            "action": "analyzeImageForText",
            "image": sample_image,
            "analysisPrompt": "Describe the photo.",
        })
        assert dump(result) == {"text": "A cat on a sofa."}
        assert fake_provider.calls[0]["config"] is None
        assert fake_provider.calls[0]["parts"][1].text == "Describe the photo."


class TestGeneratePhotoshoot:

    @pytest.mark.asyncio
    async def test_forwards_parts_and_returns_both_shapes(self, dispatcher, fake_provider):
        fake_provider.response = image_response(data="AAAA", mime_type="image/jpeg")
        parts = [
            {"inlineData": {"data": "AAAA", "mimeType": "image/png"}},
            {"text": "studio lighting"},
        ]
        result = await dispatcher.dispatch({"action": "generatePhotoshoot", "parts": parts})

        assert dump(result) == {
            "resultUrl": "data:image/jpeg;base64,AAAA",
            "generatedPhotoshootResult": {"base64": "AAAA", "mimeType": "image/jpeg"},
        }
        sent = fake_provider.calls[0]["parts"]
        assert [p.text for p in sent] == [None, "studio lighting"]

    @pytest.mark.asyncio
    async def test_no_inline_image_is_generation_error(self, dispatcher, fake_provider):
        fake_provider.response = text_response("no image for you")
        with pytest.raises(GenerationError):
            await dispatcher.dispatch({"action": "generatePhotoshoot", "parts": [{"text": "x"}]})


class TestProviderErrors:

    @pytest.mark.asyncio
    async def test_sdk_exception_becomes_provider_error(self, dispatcher, fake_provider, sample_image):
        fake_provider.error = RuntimeError("API key not valid. Please pass a valid API key.")
        with pytest.raises(ProviderError) as exc_info:
            await dispatcher.dispatch({"action": "checkImageSubject", "image": sample_image})
        assert exc_info.value.message == "The Google API key is invalid."
        assert exc_info.value.context["errorType"] == "RuntimeError"

    @pytest.mark.parametrize("raw, expected", [
        ("400 API_KEY_INVALID", "The Google API key is invalid."),
        ("403 PERMISSION_DENIED: model not allowed", "The API key does not have permission to use this model."),
        ("Response blocked by safety filters", "The image was blocked by the safety system. Try a different photo."),
        ("503 overloaded", "Could not generate the variation."),
    ])
    def test_translate_provider_error(self, raw, expected):
        assert translate_provider_error(Exception(raw), "Could not generate the variation.") == expected


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_returns_profile(self, dispatcher, fake_verifier):
        result = await dispatcher.dispatch({"action": "authenticate", "token": "id-token"})
        assert dump(result) == {
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "picture": "https://example.com/ada.png",
        }
        assert fake_verifier.calls == [("id-token", CLIENT_ID)]

    @pytest.mark.asyncio
    async def test_missing_token(self, dispatcher, fake_verifier):
        with pytest.raises(ValidationError) as exc_info:
            await dispatcher.dispatch({"action": "authenticate"})
        assert exc_info.value.message == "Token not provided."
        assert fake_verifier.calls == []

    @pytest.mark.asyncio
    async def test_rejected_token(self, test_settings, fake_provider):
        dispatcher = ActionDispatcher(test_settings, fake_provider, FakeIdentityVerifier(claims={}))
        with pytest.raises(AuthError) as exc_info:
            await dispatcher.dispatch({"action": "authenticate", "token": "bad"})
        assert exc_info.value.message == "Invalid token data."

    @pytest.mark.asyncio
    async def test_verifier_failure(self, dispatcher, fake_verifier):
        fake_verifier.error = ConnectionError("cert fetch failed")
        with pytest.raises(AuthError) as exc_info:
            await dispatcher.dispatch({"action": "authenticate", "token": "id-token"})
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_client_id_not_configured(self, fake_provider, fake_verifier):
        dispatcher = ActionDispatcher(make_settings(google_client_id=""), fake_provider, fake_verifier)
        with pytest.raises(ConfigError):
            await dispatcher.dispatch({"action": "authenticate", "token": "id-token"})
        assert fake_verifier.calls == []


class TestWithoutProvider:
    """No API key configured: generation fails with ConfigError, sign-in still works."""

    @pytest.fixture
    def keyless(self, fake_verifier):
        return ActionDispatcher(make_settings(gemini_api_key=""), None, fake_verifier)

    @pytest.mark.asyncio
    async def test_generation_is_config_error(self, keyless, sample_image):
        with pytest.raises(ConfigError) as exc_info:
            await keyless.dispatch({"action": "checkImageSubject", "image": sample_image})
        assert exc_info.value.status_code == 500
        assert "API key" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_validation_still_comes_first(self, keyless):
        with pytest.raises(ValidationError):
            await keyless.dispatch({"action": "generatePhotoshoot"})

    @pytest.mark.asyncio
    async def test_authenticate_works(self, keyless, fake_verifier):
        result = await keyless.dispatch({"action": "authenticate", "token": "id-token"})
        assert result.email == "ada@example.com"
        assert fake_verifier.calls == [("id-token", CLIENT_ID)]


class TestBearerGuard:
    """REQUIRE_AUTH=true: every action except authenticate needs a bearer token."""

    @pytest.fixture
    def guarded(self, fake_provider, fake_verifier):
        return ActionDispatcher(make_settings(require_auth=True), fake_provider, fake_verifier)

    @pytest.mark.asyncio
    async def test_guard_off_by_default(self, dispatcher, fake_verifier, sample_image):
        await dispatcher.dispatch({"action": "generateVariation", "prompt": "p", "image": sample_image})
        assert fake_verifier.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer "])
    async def test_missing_token(self, guarded, fake_provider, sample_image, header):
        with pytest.raises(UnauthorizedError) as exc_info:
            await guarded.dispatch(
                {"action": "checkImageSubject", "image": sample_image},
                authorization=header,
            )
        assert exc_info.value.status_code == 401
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_invalid_token(self, fake_provider, sample_image):
        guarded = ActionDispatcher(
            make_settings(require_auth=True), fake_provider, FakeIdentityVerifier(claims={})
        )
        with pytest.raises(UnauthorizedError) as exc_info:
            await guarded.dispatch(
                {"action": "checkImageSubject", "image": sample_image},
                authorization="Bearer expired",
            )
        assert exc_info.value.message == "Invalid token."

    @pytest.mark.asyncio
    async def test_valid_token_passes(self, guarded, fake_provider, fake_verifier, sample_image):
        fake_provider.response = text_response('{"category":"man","smile":"teeth"}')
        await guarded.dispatch(
            {"action": "checkImageSubject", "image": sample_image},
            authorization="Bearer good-token",
        )
        assert fake_verifier.calls == [("good-token", CLIENT_ID)]
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_authenticate_is_not_guarded(self, guarded):
        result = await guarded.dispatch({"action": "authenticate", "token": "id-token"})
        assert result.email == "ada@example.com"
