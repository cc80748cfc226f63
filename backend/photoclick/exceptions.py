"""
PhotoClick Relay — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions, each carrying its HTTP status.
Why:   Services raise domain errors; global handlers in main.py turn them into
       `{"error": message, "details": ..., "requestId": ...}` responses.
How:   Each exception class carries a user-facing message and an optional
       context dict (returned as `details`).

Exception Hierarchy:
    PhotoClickError (base)
    ├── ValidationError     → 400 Bad Request (missing/malformed fields)
    ├── UnauthorizedError   → 401 Unauthorized (bearer token missing/invalid)
    ├── GenerationError     → 500 (provider answered without usable content)
    ├── ProviderError       → 500 (provider call itself failed)
    ├── AuthError           → 500 (login token present but unverifiable)
    ├── ConfigError         → 500 (required configuration missing)
    └── RelayError          → 500 (unexpected failure caught at the endpoint)

    RelayClientError (client side, never leaves the caller's process)
    ├── TransportError      (network failure or timeout)
    └── SessionExpiredError (server answered 401)
"""

from typing import Any, Dict, Optional


class PhotoClickError(Exception):
    """
    Base exception for all server-side relay errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Extra structured info, returned as `details` when non-empty
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PhotoClickError):
    """
    Raised when client input fails validation.

    When:    Unknown action, missing required fields, undecodable base64.
    HTTP:    400 Bad Request
    Raised before any provider call is attempted.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(PhotoClickError):
    """Bearer token missing or rejected while REQUIRE_AUTH is on. HTTP 401."""

    status_code = 401


class GenerationError(PhotoClickError):
    """
    The provider call succeeded but returned no usable content.

    Examples: no inline image part, JSON text that does not parse, a subject
    object without `category`/`smile`.
    """

    def __init__(
        self,
        message: str = "The model did not return usable content",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ProviderError(PhotoClickError):
    """
    The provider call raised. The message is already translated for the user;
    the SDK error type is kept in context for logs.
    """

    def __init__(
        self,
        message: str = "The AI service request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthError(PhotoClickError):
    """Identity token was supplied but verification yielded no usable claims."""

    def __init__(
        self,
        message: str = "Invalid token data.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigError(PhotoClickError):
    """
    Required configuration is missing.

    Standalone mode: raised from the lifespan, startup fails.
    Serverless mode: raised per request, answered with 500.
    """

    def __init__(
        self,
        message: str = "Server configuration is incomplete.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RelayError(PhotoClickError):
    """Wraps any non-domain exception caught at the relay endpoint."""

    def __init__(
        self,
        message: str = "An unknown server error occurred.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ══════════════════════════════════════════════════════════════════════════
# Client-side errors (raised by photoclick.client.RelayApiClient)
# ══════════════════════════════════════════════════════════════════════════


class RelayClientError(Exception):
    """An error surfaced to the user of RelayApiClient. `str(exc)` is display text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TransportError(RelayClientError):
    """The server could not be reached, or did not answer within the timeout."""


class SessionExpiredError(RelayClientError):
    """The server answered 401; the stored token has been cleared."""
