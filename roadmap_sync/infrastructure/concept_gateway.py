"""HTTP Concept Gateway — httpx transport for backend actions and queries.

Invariants:
    - Never raises: every outcome is a GatewayResponse (data or error string)
    - Every call is POST <base_url>/api/<concept>/<operation> with a JSON body
    - Query results unwrapped from a bare array or a {"results": [...]} wrapper;
      any other payload passes through untouched for the caller to validate
    - Error normalization, in order: body `error` key, HTTP status, transport

Design Decisions:
    - Lazily created AsyncClient, reused across calls; close() / async with releases it
    - No retries here: the request timeout is the only time bound, callers reconcile
"""

import logging
from typing import Any

import httpx

from roadmap_sync.schemas.gateway import GatewayResponse

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error: Unable to reach server"


class HttpConceptGateway:
    """Fail-soft gateway over the backend's concept routes."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpConceptGateway":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def invoke_action(
        self, concept: str, action: str, body: dict[str, Any],
    ) -> GatewayResponse:
        return await self._request(concept, action, body)

    async def invoke_query(
        self, concept: str, query: str, body: dict[str, Any],
    ) -> GatewayResponse:
        response = await self._request(concept, query, body)
        if not response.ok:
            return response
        return _unwrap_results(response.data)

    async def _request(
        self, concept: str, operation: str, body: dict[str, Any],
    ) -> GatewayResponse:
        path = f"/api/{concept}/{operation}"
        try:
            response = await self.client.post(path, json=body)
        except httpx.HTTPError as e:
            logger.warning(
                f"Transport failure on {path}: {e}",
                extra={"concept": concept, "operation": operation},
            )
            return GatewayResponse.failure(NETWORK_ERROR)
        return _normalize(response)


def _normalize(response: httpx.Response) -> GatewayResponse:
    """Map an HTTP response onto the {data} | {error} envelope."""
    payload = _json_or_none(response)
    if isinstance(payload, dict) and payload.get("error"):
        return GatewayResponse.failure(str(payload["error"]))
    if response.is_error:
        return GatewayResponse.failure(
            f"Server error: {response.status_code} {response.reason_phrase}",
        )
    return GatewayResponse.success(payload)


def _unwrap_results(data: Any) -> GatewayResponse:
    """Queries answer with a bare list, or a list wrapped in `results`.

    Other shapes pass through as data; `GatewayResponse.records` rejects them
    where a list of records is expected.
    """
    if data is None:
        return GatewayResponse.success([])
    if isinstance(data, list):
        return GatewayResponse.success(data)
    if isinstance(data, dict) and "results" in data:
        results = data["results"]
        if isinstance(results, list):
            return GatewayResponse.success(results)
        if isinstance(results, dict) and "error" in results:
            return GatewayResponse.failure(str(results["error"]))
    return GatewayResponse.success(data)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
