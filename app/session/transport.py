from typing import Optional, Protocol

import httpx
import structlog

logger = structlog.get_logger()

PING_PATH = "/api/v1/auth/session/ping"
LOGOUT_PATH = "/api/v1/auth/logout"
CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
DEFAULT_TIMEOUT_SECONDS = 10.0


class SessionTransport(Protocol):
    async def ping(self) -> bool:
        """True when the server still accepts the session."""
        ...

    async def logout(self) -> None:
        ...


class HttpSessionTransport:
    """Cookie-authenticated liveness ping and logout calls over an async httpx client."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = "http://127.0.0.1:8000",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def ping(self) -> bool:
        try:
            response = await self.client.post(PING_PATH, headers=self._csrf_headers())
        except httpx.HTTPError as exc:
            logger.warning("session_ping_failed", error=str(exc))
            return False
        if not response.is_success:
            logger.info("session_ping_rejected", status_code=response.status_code)
        return response.is_success

    def _csrf_headers(self) -> dict:
        token = self.client.cookies.get(CSRF_COOKIE_NAME)
        return {CSRF_HEADER_NAME: token} if token else {}

    async def logout(self) -> None:
        response = await self.client.post(LOGOUT_PATH, headers=self._csrf_headers())
        response.raise_for_status()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
