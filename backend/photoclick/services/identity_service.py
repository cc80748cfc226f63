"""
PhotoClick Relay — Google Identity Token Verifier
===================================================

What:  Concrete IdentityVerifier for Google Sign-In ID tokens.
How:   google-auth's `verify_oauth2_token` checks signature, expiry, issuer and
       audience. It is blocking (fetches Google's certs over `requests`), so it
       runs in Starlette's thread pool.
Who:   Used by ActionDispatcher.authenticate() and the bearer-token guard.
"""

import logging
from typing import Any, Dict, Optional

import google.auth.transport.requests
from google.auth import exceptions as auth_exceptions
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool

from photoclick.services.provider_base import IdentityVerifier

logger = logging.getLogger(__name__)


class GoogleIdentityVerifier(IdentityVerifier):

    def __init__(self):
        # Reused across calls so the cert cache on the session is kept
        self._request = google.auth.transport.requests.Request()

    def _verify_sync(self, token: str, audience: str) -> Optional[Dict[str, Any]]:
        try:
            return id_token.verify_oauth2_token(token, self._request, audience)
        except auth_exceptions.TransportError:
            raise
        except (ValueError, auth_exceptions.GoogleAuthError) as e:
            # Bad signature, wrong audience or issuer, expired: the token does not verify
            logger.info("ID token rejected: %s", str(e))
            return None

    async def verify(self, token: str, audience: str) -> Optional[Dict[str, Any]]:
        return await run_in_threadpool(self._verify_sync, token, audience)
