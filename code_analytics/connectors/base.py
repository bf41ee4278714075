"""Code Analytics — Provider API Client Base.

Handles retries, rate limiting and JSON decoding shared by every provider
client. Subclasses supply base URL and auth.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from code_analytics.config import settings
from code_analytics.core.logging import get_logger

logger = get_logger("connectors.base")

RETRY_BASE_DELAY = 2  # seconds


class ProviderAPIError(Exception):
    """Raised when a provider returns a non-success status or malformed JSON."""

    def __init__(self, message: str, status_code: int = 0, body: str = "", source: str = ""):
        self.status_code = status_code
        self.body = body
        self.source = source
        super().__init__(message)


class ProviderClient:
    """Async HTTP client for one telemetry provider."""

    source = ""

    def __init__(self, base_url: str, max_retries: int | None = None, timeout: float | None = None):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries or settings.max_retries
        self.timeout = timeout or settings.http_timeout
        self._client: Optional[httpx.AsyncClient] = None

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": "CodeAnalytics/1.0.0"}

    def _auth(self) -> Any:
        return None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                auth=self._auth(),
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── Core Request Method ──

    async def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Make a request with retry + rate-limit handling and return decoded JSON."""
        client = await self._get_client()

        for attempt in range(1, self.max_retries + 1):
            started = time.monotonic()
            try:
                resp = await client.request(method, path, params=params, json=json_body)
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s", extra={"source": self.source})
                    await asyncio.sleep(wait)
                    continue
                raise ProviderAPIError(
                    f"{self.source} connection failed after {self.max_retries} retries: {e}",
                    source=self.source,
                ) from e

            duration_ms = round((time.monotonic() - started) * 1000)

            # Rate limited or transient server error
            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < self.max_retries:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"{self.source} returned {resp.status_code}. Retrying in {wait}s "
                        f"(attempt {attempt}/{self.max_retries})",
                        extra={"source": self.source, "status_code": resp.status_code},
                    )
                    await asyncio.sleep(wait)
                    continue

            if resp.status_code != 200:
                raise ProviderAPIError(
                    f"{self.source} API error: {resp.status_code} {resp.text[:500]}",
                    status_code=resp.status_code,
                    body=resp.text,
                    source=self.source,
                )

            try:
                payload = resp.json()
            except ValueError as e:
                raise ProviderAPIError(
                    f"Failed to parse {self.source} response: {e}",
                    status_code=resp.status_code,
                    body=resp.text,
                    source=self.source,
                ) from e

            logger.info(
                f"{method} {path} → {resp.status_code}",
                extra={
                    "source": self.source,
                    "endpoint": path,
                    "status_code": resp.status_code,
                    "duration_ms": duration_ms,
                },
            )
            return payload

        raise ProviderAPIError("Max retries exhausted", source=self.source)
