"""Roadmap Client — wires the state components around one gateway and session.

Invariants:
    - Every component shares the same gateway and session context instances
    - Components are built once; callers reach them through attributes
    - logout() is the only operation that invalidates the completion cache

Design Decisions:
    - Explicit construction over a container or registry: every dependency
      visible in __init__
    - from_settings() is the only place that touches config and infrastructure,
      so tests build the client from fakes directly
"""

import logging

from roadmap_sync.config import Settings, get_settings
from roadmap_sync.core.gateway_protocols import BlobStorage, ConceptGateway, SessionContext
from roadmap_sync.infrastructure.blob_storage import HttpBlobStorage
from roadmap_sync.infrastructure.concept_gateway import HttpConceptGateway
from roadmap_sync.infrastructure.observability import setup_logging
from roadmap_sync.infrastructure.session_context import InMemorySessionContext
from roadmap_sync.services.completion_cache import CompletionCache
from roadmap_sync.services.content_cache import ContentCache
from roadmap_sync.services.dag_state_manager import DagStateManager
from roadmap_sync.services.resource_list_engine import ResourceListEngine
from roadmap_sync.services.sharing_view import SharingView

logger = logging.getLogger(__name__)


class RoadmapClient:
    """Facade over the roadmap state engine."""

    def __init__(
        self,
        gateway: ConceptGateway,
        session: SessionContext,
        storage: BlobStorage,
        content_type: str = "text/markdown; charset=UTF-8",
    ):
        self.gateway = gateway
        self.session = session
        self.storage = storage
        self.completion = CompletionCache(gateway, session)
        self.resources = ResourceListEngine(gateway, self.completion)
        self.content = ContentCache(gateway, session, storage, content_type)
        self.sharing = SharingView(gateway, session)
        self.dag = DagStateManager(gateway, session, self.resources, self.sharing)

    @classmethod
    def from_settings(
        cls,
        session: SessionContext | None = None,
        settings: Settings | None = None,
    ) -> "RoadmapClient":
        settings = settings or get_settings()
        setup_logging(settings.log_level, settings.log_format)
        return cls(
            gateway=HttpConceptGateway(
                settings.api_base_url, settings.request_timeout_seconds,
            ),
            session=session or InMemorySessionContext(),
            storage=HttpBlobStorage(settings.request_timeout_seconds),
            content_type=settings.content_type,
        )

    def logout(self) -> None:
        """Invalidate every client cache. Signing out is the auth layer's job."""
        self.dag.reset()
        self.sharing.clear()
        self.resources.clear()
        self.completion.clear()
        self.content.clear()
        logger.info("Client state cleared on logout")

    async def close(self) -> None:
        for closable in (self.gateway, self.storage):
            close = getattr(closable, "close", None)
            if close is not None:
                await close()
