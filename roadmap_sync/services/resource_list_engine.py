"""Resource List Engine — ordered resource sequences attached to nodes.

Invariants:
    - Cached sequences are sorted by index and indices are dense [0, len)
    - Append and remove never patch locally: success triggers a full reload
      (index assignment is server-authoritative)
    - Reorder is optimistic: local splice first, remote move second, full
      reload on remote failure (no partial undo)
    - from_index validation happens before any remote call

Design Decisions:
    - Keyed by list id, not node id: an edge shares its source node's list
    - Loading a list also populates the completion cache for its resources
    - A failed reorder whose reload also fails drops the cache entry, so the
      next read reloads instead of trusting the unconfirmed order
"""

import logging

from roadmap_sync.core.domain_types import Concept
from roadmap_sync.core.enforce_graph import check_title_present
from roadmap_sync.core.errors import RoadmapError, returns_error
from roadmap_sync.core.gateway_protocols import ConceptGateway
from roadmap_sync.core.identifiers import new_resource_id
from roadmap_sync.core.resource_order import clamp_target_index, move_resource
from roadmap_sync.schemas.concepts import IndexedResource
from roadmap_sync.services.batch_join import gather_tolerant
from roadmap_sync.services.completion_cache import CompletionCache
from roadmap_sync.services.remote_calls import require_action, require_query

logger = logging.getLogger(__name__)


class ResourceListEngine:
    """Owns resources-by-list-id."""

    def __init__(self, gateway: ConceptGateway, completion: CompletionCache):
        self._gateway = gateway
        self._completion = completion
        self._lists: dict[str, list[IndexedResource]] = {}

    def resources(self, list_id: str) -> list[IndexedResource]:
        """Cached sequence for a list (empty if never loaded)."""
        return list(self._lists.get(list_id, []))

    def is_loaded(self, list_id: str) -> bool:
        return list_id in self._lists

    def drop_list(self, list_id: str) -> None:
        self._lists.pop(list_id, None)

    def clear(self) -> None:
        self._lists.clear()

    @returns_error
    async def load_resources(self, list_id: str) -> RoadmapError | None:
        response = await require_query(
            self._gateway, Concept.RESOURCE_LIST, "_getListResources",
            {"resourceList": list_id},
        )
        resources = sorted(response.records(IndexedResource), key=lambda r: r.index)
        self._lists[list_id] = resources

        await gather_tolerant(
            (self._completion.get_or_create_check(r.resource) for r in resources),
            label=f"check population for list {list_id}",
        )

    @returns_error
    async def append_resource(self, list_id: str, title: str) -> RoadmapError | None:
        error = check_title_present(title, "resource title")
        if error:
            return error

        await require_action(
            self._gateway, Concept.RESOURCE_LIST, "appendResource",
            {
                "resourceList": list_id,
                "resource": new_resource_id(),
                "resourceTitle": title.strip(),
            },
        )
        return await self.load_resources(list_id)

    @returns_error
    async def remove_resource(self, list_id: str, index: int) -> RoadmapError | None:
        await require_action(
            self._gateway, Concept.RESOURCE_LIST, "deleteResource",
            {"resourceList": list_id, "index": index},
        )
        return await self.load_resources(list_id)

    @returns_error
    async def reorder_resource(
        self, list_id: str, from_index: int, to_index: int,
    ) -> RoadmapError | None:
        if from_index == to_index:
            return None

        current = self._lists.get(list_id, [])
        # Raises ResourceNotFoundError before any remote call
        self._lists[list_id] = move_resource(current, list_id, from_index, to_index)
        target = clamp_target_index(len(current), to_index)

        try:
            await require_action(
                self._gateway, Concept.RESOURCE_LIST, "moveResource",
                {"resourceList": list_id, "oldIndex": from_index, "newIndex": target},
            )
        except RoadmapError as e:
            logger.warning(
                f"Reorder rejected, reloading list: {e.message}",
                extra={"list_id": list_id, "error_code": e.code},
            )
            reload_error = await self.load_resources(list_id)
            if reload_error is not None:
                # Optimistic order is unconfirmed; forget it rather than keep it
                self.drop_list(list_id)
                logger.error(
                    f"Reload after failed reorder also failed: {reload_error}",
                    extra={"list_id": list_id},
                )
            raise
        return None
