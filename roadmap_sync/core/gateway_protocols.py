"""Boundary Protocols — contracts between the state engine and its collaborators.

Invariants:
    - Services NEVER import infrastructure — dependency arrows point inward only
    - Gateway calls are fail-soft: errors come back as values, never raised
    - Session identity is read on every call, never cached by a service

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass plain fakes
    - Async in Protocol: implementations do IO; the pure checks in core/ stay sync
"""

from typing import Any, Protocol

from roadmap_sync.core.domain_types import UserId
from roadmap_sync.schemas.gateway import GatewayResponse


class ConceptGateway(Protocol):
    """Contract for the remote action/query backend."""
    async def invoke_action(
        self, concept: str, action: str, body: dict[str, Any],
    ) -> GatewayResponse: ...

    async def invoke_query(
        self, concept: str, query: str, body: dict[str, Any],
    ) -> GatewayResponse: ...


class SessionContext(Protocol):
    """Supplies the acting user. Lifecycle owned by the auth layer."""
    @property
    def current_user(self) -> UserId | None: ...


class BlobStorage(Protocol):
    """Contract for pre-signed URL transfers of resource content."""
    async def fetch_text(self, url: str) -> str: ...

    async def upload_text(
        self, url: str, content: str, content_type: str,
    ) -> None: ...
