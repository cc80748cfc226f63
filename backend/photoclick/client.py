"""
PhotoClick Relay — API Call Helper
====================================

What:  Async client for the relay, the Python counterpart of the browser's
       `callApi` helper.
Why:   Scripts, integration checks and other Python front ends need the same
       behavior the browser has: bearer token from local storage, a hard
       timeout long enough for high-resolution generation, distinct messages
       for transport, parse and HTTP failures, and session teardown on 401.
How:   httpx.AsyncClient for transport; the whole exchange runs under
       asyncio.wait_for so a hung provider call cannot block the caller.

Failure handling:
    network error / timeout     → TransportError(NETWORK_ERROR_MESSAGE)
    2xx, body not JSON          → returns {"error": UNEXPECTED_RESPONSE_MESSAGE}
    401                         → token cleared, on_session_expired() called,
                                  SessionExpiredError(SESSION_EXPIRED_MESSAGE)
    other non-2xx               → RelayClientError(server "error" or generic)
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import aiofiles
import aiofiles.os
import httpx

from photoclick.exceptions import RelayClientError, SessionExpiredError, TransportError

logger = logging.getLogger(__name__)

# Long enough for a 2K image generation on a slow day
DEFAULT_TIMEOUT_SECONDS = 180.0

RELAY_PATH = "/api/generate"
LOGIN_PATH = "/api/login"
CONFIG_PATH = "/api/config"

NETWORK_ERROR_MESSAGE = (
    "Could not reach the server. Check your network connection; "
    "generation may also be taking longer than usual."
)
UNEXPECTED_RESPONSE_MESSAGE = "The server returned an unexpected response."
SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."
GENERIC_ERROR_MESSAGE = "An error occurred."

SessionExpiredHook = Callable[[], Union[None, Awaitable[None]]]


# ══════════════════════════════════════════════════════════════════════════
# Token storage ("local storage")
# ══════════════════════════════════════════════════════════════════════════


class MemoryTokenStore:
    """Keeps the ID token for the lifetime of the process."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    async def get(self) -> Optional[str]:
        return self._token

    async def set(self, token: str) -> None:
        self._token = token

    async def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """
    Persists the ID token in a small file so it survives restarts, the way the
    browser keeps it in localStorage. The file holds the token text only.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def get(self) -> Optional[str]:
        if not await aiofiles.os.path.exists(self.path):
            return None
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            token = (await f.read()).strip()
        return token or None

    async def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(token)

    async def clear(self) -> None:
        try:
            await aiofiles.os.remove(self.path)
        except FileNotFoundError:
            pass


# ══════════════════════════════════════════════════════════════════════════
# Client
# ══════════════════════════════════════════════════════════════════════════


class RelayApiClient:
    """
    Args:
        base_url: Server root, e.g. "http://localhost:3001".
        token_store: Where the ID token lives; MemoryTokenStore by default.
        timeout: Hard upper bound, in seconds, for one whole call.
        on_session_expired: Called after a 401 has cleared the token; the
            browser reloads the page here. May be sync or async.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        token_store=None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        on_session_expired: Optional[SessionExpiredHook] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_store = token_store or MemoryTokenStore()
        self.timeout = timeout
        self.on_session_expired = on_session_expired
        # httpx's own timeouts are per phase; asyncio.wait_for bounds the total
        self._http = httpx.AsyncClient(base_url=base_url, timeout=None, transport=transport)

    async def __aenter__(self) -> "RelayApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = await self.token_store.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        headers = await self._headers()
        content = json.dumps(body) if body is not None else None
        try:
            return await asyncio.wait_for(
                self._http.request(method, endpoint, content=content, headers=headers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("%s %s timed out after %.0fs", method, endpoint, self.timeout)
            raise TransportError(NETWORK_ERROR_MESSAGE)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, endpoint, str(e))
            raise TransportError(NETWORK_ERROR_MESSAGE)

    async def _expire_session(self) -> None:
        await self.token_store.clear()
        if self.on_session_expired is not None:
            outcome = self.on_session_expired()
            if asyncio.iscoroutine(outcome):
                await outcome

    async def _handle(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = json.loads(response.text)
        except ValueError:
            data = None

        if response.is_success:
            if not isinstance(data, dict):
                return {"error": UNEXPECTED_RESPONSE_MESSAGE}
            return data

        if response.status_code == 401:
            await self._expire_session()
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE, status_code=401)

        if not isinstance(data, dict):
            raise RelayClientError(UNEXPECTED_RESPONSE_MESSAGE, status_code=response.status_code)
        raise RelayClientError(
            data.get("error") or GENERIC_ERROR_MESSAGE,
            status_code=response.status_code,
        )

    async def call(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST `body` as JSON to `endpoint` and return the decoded reply."""
        response = await self._send("POST", endpoint, body)
        return await self._handle(response)

    async def generate(self, action: str, **payload: Any) -> Dict[str, Any]:
        """Run one relay action, e.g. `generate("checkImageSubject", image={...})`."""
        return await self.call(RELAY_PATH, {"action": action, **payload})

    async def login(self, id_token: str) -> Dict[str, Any]:
        """Verify a Google ID token; on success the token is kept for later calls."""
        profile = await self.call(LOGIN_PATH, {"token": id_token})
        if "error" not in profile:
            await self.token_store.set(id_token)
        return profile

    async def fetch_client_id(self) -> str:
        response = await self._send("GET", CONFIG_PATH)
        data = await self._handle(response)
        client_id = data.get("clientId")
        if not client_id:
            raise RelayClientError(data.get("error") or UNEXPECTED_RESPONSE_MESSAGE)
        return client_id
