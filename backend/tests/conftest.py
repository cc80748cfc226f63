"""
PhotoClick Relay — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (fake provider, fake verifier,
       an app wired to them, and an HTTP client talking to that app).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: Frozen Settings with fake credentials
    ├── fake_provider: Records calls, returns a scripted ProviderResponse
    ├── fake_verifier: Returns scripted claims for any token
    ├── dispatcher: ActionDispatcher over the fakes
    ├── app: create_app() over the fakes
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import os

# Override settings for testing BEFORE any app imports
# Keeps tests away from real API keys in the developer's environment
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ["REQUIRE_AUTH"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from photoclick.config import Settings
from photoclick.schemas.relay import (
    Candidate,
    CandidateContent,
    ContentPart,
    GenerationConfig,
    InlineData,
    ProviderResponse,
)
from photoclick.services.dispatcher import ActionDispatcher
from photoclick.services.provider_base import ContentProvider, IdentityVerifier

CLIENT_ID = "test-client.apps.googleusercontent.com"

# 3 zero bytes, the smallest payload that round-trips to a 4-char base64 string
PNG_BASE64 = "AAAA"

VALID_CLAIMS = {
    "email": "ada@example.com",
    "name": "Ada Lovelace",
    "picture": "https://example.com/ada.png",
    "aud": CLIENT_ID,
}


def image_response(data: str = PNG_BASE64, mime_type: str = "image/png") -> ProviderResponse:
    """A provider answer whose first candidate carries one inline image."""
    return ProviderResponse(candidates=[
        Candidate(
            content=CandidateContent(parts=[
                ContentPart(inline_data=InlineData(data=data, mime_type=mime_type)),
            ]),
            finish_reason="STOP",
        )
    ])


def text_response(text: str, finish_reason: str = "STOP") -> ProviderResponse:
    return ProviderResponse(candidates=[
        Candidate(
            content=CandidateContent(parts=[ContentPart(text=text)]),
            finish_reason=finish_reason,
        )
    ])


class FakeContentProvider(ContentProvider):
    """
    Stand-in for Gemini.

    Set `response` to what the next call returns, or `error` to an exception
    the next call raises. Every call is recorded in `calls`.
    """

    def __init__(self, response: Optional[ProviderResponse] = None):
        self.response = response or image_response()
        self.error: Optional[Exception] = None
        self.healthy = True
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(
        self,
        model: str,
        parts: List[ContentPart],
        config: Optional[GenerationConfig] = None,
    ) -> ProviderResponse:
        self.calls.append({"model": model, "parts": parts, "config": config})
        if self.error is not None:
            raise self.error
        return self.response

    async def health_check(self) -> bool:
        return self.healthy


class FakeIdentityVerifier(IdentityVerifier):
    """Accepts any token and returns `claims`; set `error` to make it raise."""

    def __init__(self, claims: Optional[Dict[str, Any]] = None):
        self.claims = dict(VALID_CLAIMS) if claims is None else claims
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    async def verify(self, token: str, audience: str) -> Optional[Dict[str, Any]]:
        self.calls.append((token, audience))
        if self.error is not None:
            raise self.error
        return self.claims


def make_settings(**overrides) -> Settings:
    values = {
        "gemini_api_key": "test-key-not-real",
        "google_client_id": CLIENT_ID,
        "require_auth": False,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_provider() -> FakeContentProvider:
    return FakeContentProvider()


@pytest.fixture
def fake_verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest.fixture
def dispatcher(test_settings, fake_provider, fake_verifier) -> ActionDispatcher:
    return ActionDispatcher(test_settings, fake_provider, fake_verifier)


@pytest.fixture
def sample_image() -> Dict[str, str]:
    """The browser's image shape: raw base64 plus MIME type."""
    return {"base64": PNG_BASE64, "mimeType": "image/png"}


@pytest.fixture
def app(test_settings, fake_provider, fake_verifier):
    from photoclick.main import create_app
    return create_app(test_settings, provider=fake_provider, verifier=fake_verifier)


@pytest_asyncio.fixture
async def test_client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    How:     Uses ASGITransport to route requests directly to the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
