"""
PhotoClick Relay — Application Configuration
==============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Built once at process start and handed by reference to the dispatcher.
When:  Loaded once at module import time; validated in the app lifespan.

Deployment modes:
    standalone  A long-running uvicorn process. Missing credentials are fatal
                at startup.
    serverless  One short-lived process per invocation. The app still starts;
                requests that need a missing value answer 500.

The object is frozen: nothing mutates configuration after construction.
"""

from typing import List, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from photoclick.exceptions import ConfigError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Google Gemini ─────────────────────────────────────────────────────
    # What: API key for the Gemini content API
    # Required: YES, every generation action depends on it
    # API_KEY is accepted for deployments configured for the serverless relay
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("gemini_api_key", "api_key"),
        description="Google Gemini API key",
    )

    # What: Model used for image-output actions (variation, photoshoot)
    image_model: str = Field(default="gemini-2.5-flash-image")

    # What: Model used for text/JSON actions (subject check, analysis)
    text_model: str = Field(default="gemini-2.5-flash")

    # ── Google Identity ───────────────────────────────────────────────────
    # What: OAuth client ID; ID tokens are audience-checked against it
    # Also served to the browser by GET /api/config
    google_client_id: str = Field(default="")

    # What: Require a verified bearer token on every relay action except login
    require_auth: bool = Field(default=False)

    # ── Deployment ────────────────────────────────────────────────────────
    deployment_mode: Literal["standalone", "serverless"] = Field(default="standalone")

    # ── CORS ──────────────────────────────────────────────────────────────
    # Permissive by default: the browser front end may be served from anywhere
    cors_allow_origin: str = Field(default="*")
    cors_allow_methods: str = Field(default="POST, OPTIONS")
    cors_allow_headers: str = Field(default="Content-Type, Authorization")

    @property
    def cors_headers(self) -> dict:
        """Headers stamped on every response by the CORS middleware."""
        return {
            "Access-Control-Allow-Origin": self.cors_allow_origin,
            "Access-Control-Allow-Methods": self.cors_allow_methods,
            "Access-Control-Allow-Headers": self.cors_allow_headers,
        }

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3001, ge=1024, le=65535)

    # What: Controls verbosity of application logging
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "frozen": True,
        "extra": "ignore",
    }

    @property
    def provider_configured(self) -> bool:
        return bool(self.gemini_api_key) and self.gemini_api_key != "your_gemini_api_key_here"

    def missing_required(self) -> List[str]:
        """Human-readable list of required settings that are not set."""
        errors = []
        if not self.provider_configured:
            errors.append(
                "GEMINI_API_KEY is not set. "
                "Get a key at https://aistudio.google.com/app/apikey"
            )
        if not self.google_client_id:
            errors.append("GOOGLE_CLIENT_ID is not set.")
        return errors

    def validate_required(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan) in standalone mode.
        Raises: ConfigError listing every missing value.
        """
        errors = self.missing_required()
        if errors:
            raise ConfigError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors),
                context={"missing": len(errors)},
            )


# Singleton instance; create_app() uses it unless a test passes its own
settings = Settings()
