"""Sharing View — roadmaps other users shared with the signed-in user.

Invariants:
    - Shared list and owner-name table are replaced on every load, never merged
    - Per-item lookups run concurrently; a failed item is treated as "no such
      shared roadmap" and omitted, never failing the batch
    - Only the initial shared-file listing can fail the whole load
"""

import logging

from roadmap_sync.core.domain_types import Concept, UserId
from roadmap_sync.core.errors import RoadmapError, returns_error
from roadmap_sync.core.gateway_protocols import ConceptGateway, SessionContext
from roadmap_sync.schemas.concepts import AssignedObject, SharedFile
from roadmap_sync.services.batch_join import gather_tolerant, survivors
from roadmap_sync.services.remote_calls import require_query, require_user

logger = logging.getLogger(__name__)


class SharingView:
    """Owns the shared-roadmap list and owner-id → display-name table."""

    def __init__(self, gateway: ConceptGateway, session: SessionContext):
        self._gateway = gateway
        self._session = session
        self.shared_roadmaps: list[AssignedObject] = []
        self.owner_names: dict[str, str] = {}

    def find(self, roadmap_id: str) -> AssignedObject | None:
        return next((r for r in self.shared_roadmaps if r.id == roadmap_id), None)

    def owner_name(self, owner_id: str) -> str | None:
        return self.owner_names.get(owner_id)

    def clear(self) -> None:
        self.shared_roadmaps = []
        self.owner_names = {}

    @returns_error
    async def load_shared_roadmaps(self) -> RoadmapError | None:
        user = require_user(self._session)
        listed = await require_query(
            self._gateway, Concept.SHARING, "_getSharedFiles", {"user": user},
        )
        files = listed.records(SharedFile)

        resolved = survivors(await gather_tolerant(
            (self._resolve(f.file) for f in files),
            label="shared roadmap resolution",
        ))

        self.shared_roadmaps = [roadmap for roadmap, _ in resolved]
        self.owner_names = {
            roadmap.owner: name for roadmap, name in resolved if name is not None
        }
        logger.info(
            f"Loaded {len(self.shared_roadmaps)}/{len(files)} shared roadmaps",
        )
        return None

    async def _resolve(
        self, graph_id: str,
    ) -> tuple[AssignedObject, str | None] | None:
        """Owning roadmap handle + sharer display name, or None if there is none."""
        found = await require_query(
            self._gateway, Concept.OBJECT_MANAGER, "_getAssignedObjectByObject",
            {"object": graph_id},
        )
        handles = found.records(AssignedObject)
        if not handles:
            return None
        roadmap = handles[0]
        return roadmap, await self._username(UserId(roadmap.owner))

    async def _username(self, user_id: UserId) -> str | None:
        named = await require_query(
            self._gateway, Concept.USER_AUTHENTICATION, "_getUsername",
            {"user": user_id},
        )
        return named.first_value("username")
