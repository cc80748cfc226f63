"""
PhotoClick Relay — Abstract Provider Interfaces
=================================================

What:  Abstract base classes for the two external collaborators the dispatcher
       talks to: the generative content provider and the identity verifier.
Why:   The dispatcher only knows these contracts, so tests substitute fakes and
       the Gemini/Google implementations stay swappable.
How:   Concrete implementations inherit and implement the abstract methods.
Who:   Implemented in gemini_service.py and identity_service.py; consumed by
       ActionDispatcher.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from photoclick.schemas.relay import ContentPart, GenerationConfig, ProviderResponse


class ContentProvider(ABC):
    """
    Abstract interface for a multi-modal generative model.

    Contract:
        - generate_content() takes a model name, ordered content parts and an
          optional GenerationConfig, and returns a ProviderResponse
        - Exactly one outbound call per invocation; no retries
        - SDK exceptions propagate; the dispatcher translates them
    """

    @abstractmethod
    async def generate_content(
        self,
        model: str,
        parts: List[ContentPart],
        config: Optional[GenerationConfig] = None,
    ) -> ProviderResponse:
        """
        Send `parts` to `model` and return its candidates.

        Returns:
            ProviderResponse with inline data re-encoded as base64.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Lightweight connectivity test (does NOT consume generation quota).
        Returns True if the provider is reachable, False otherwise.
        """
        ...


class IdentityVerifier(ABC):
    """Verifies a third-party ID token against an audience (OAuth client ID)."""

    @abstractmethod
    async def verify(self, token: str, audience: str) -> Optional[Dict[str, Any]]:
        """
        Returns the token's claims, or None when the token does not verify.
        Transport failures propagate.
        """
        ...
