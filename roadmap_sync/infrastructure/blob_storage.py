"""HTTP Blob Storage — downloads and uploads resource content via pre-signed URLs.

Invariants:
    - fetch_text returns the raw body decoded as text
    - upload_text sends exactly the given Content-Type header (URLs are signed for it)
    - HTTP 403 on upload → ContentTypeMismatchError; other failures → RemoteFailureError

Design Decisions:
    - Separate AsyncClient from the concept gateway: pre-signed URLs are absolute
      and must not carry the gateway's base URL or JSON headers
"""

import logging
from typing import Any

import httpx

from roadmap_sync.core.errors import ContentTypeMismatchError, RemoteFailureError

logger = logging.getLogger(__name__)


class HttpBlobStorage:
    """Transfers text to and from storage through time-limited URLs."""

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpBlobStorage":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def fetch_text(self, url: str) -> str:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise RemoteFailureError(f"Failed to download content: {e}") from e
        if response.is_error:
            raise RemoteFailureError(
                f"Failed to download content: {response.status_code} "
                f"{response.reason_phrase}",
            )
        return response.text

    async def upload_text(self, url: str, content: str, content_type: str) -> None:
        try:
            response = await self.client.put(
                url,
                content=content.encode("utf-8"),
                headers={"Content-Type": content_type},
            )
        except httpx.HTTPError as e:
            raise RemoteFailureError(f"Failed to upload content: {e}") from e
        if response.status_code == 403:
            logger.warning(
                "Upload rejected by storage (403), likely content-type mismatch",
            )
            raise ContentTypeMismatchError(
                response.status_code,
                response.reason_phrase or "Forbidden",
                content_type,
            )
        if response.is_error:
            raise RemoteFailureError(
                f"Failed to upload content: {response.status_code} "
                f"{response.reason_phrase or 'Unknown error'}",
            )
