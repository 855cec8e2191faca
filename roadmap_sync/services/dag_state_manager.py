"""DAG State Manager — the user's roadmaps and the nodes/edges of the loaded one.

Invariants:
    - Local invariant checks (duplicates, missing roadmap, ownership) run before
      any remote call and short-circuit on failure
    - Roadmap create/delete are two sequential calls (graph + handle); create
      refreshes from the backend instead of appending optimistically
    - A resource list is created before the node that references it; a node is
      removed before its list, and a failed list removal is logged, not fatal
    - Node/edge state is mutated locally only after the backend confirms
    - Loading a roadmap discards the previous graph unconditionally

Design Decisions:
    - Resource/check prefetch after load runs as a background task; the load
      result never waits on it, and wait_for_prefetch() joins it on demand
    - Shared roadmaps are delegated to SharingView; lookups read both lists
"""

import asyncio
import logging

from roadmap_sync.core.domain_types import Concept, RoadmapLoadState, resource_list_title
from roadmap_sync.core.enforce_graph import (
    check_node_title_unique,
    check_roadmap_loaded,
    check_roadmap_owner,
    check_title_present,
    validate_new_edge,
    validate_new_node,
)
from roadmap_sync.core.errors import (
    ConflictError, NotFoundError, RemoteFailureError, RoadmapError, returns_error,
)
from roadmap_sync.core.gateway_protocols import ConceptGateway, SessionContext
from roadmap_sync.core.roadmap_state import RoadmapState
from roadmap_sync.schemas.concepts import AssignedObject, Edge, Node
from roadmap_sync.services.batch_join import gather_tolerant
from roadmap_sync.services.remote_calls import (
    require_action, require_field, require_query, require_user,
)
from roadmap_sync.services.resource_list_engine import ResourceListEngine
from roadmap_sync.services.sharing_view import SharingView

logger = logging.getLogger(__name__)

DAG = Concept.ENRICHED_DAG


class DagStateManager:
    """Owns RoadmapState: roadmap handles, loaded graph, selection."""

    def __init__(
        self,
        gateway: ConceptGateway,
        session: SessionContext,
        resources: ResourceListEngine,
        sharing: SharingView,
    ):
        self._gateway = gateway
        self._session = session
        self._resources = resources
        self._sharing = sharing
        self.state = RoadmapState()
        self._prefetch: asyncio.Task | None = None

    # ─── Roadmaps ────────────────────────────────────────────────

    async def list_own_roadmaps(self) -> list[AssignedObject] | RoadmapError:
        result = await self._refresh_roadmaps()
        if isinstance(result, RoadmapError):
            return result
        return list(self.state.roadmaps)

    async def list_shared_roadmaps(self) -> list[AssignedObject] | RoadmapError:
        error = await self._sharing.load_shared_roadmaps()
        if error is not None:
            return error
        return list(self._sharing.shared_roadmaps)

    @returns_error
    async def _refresh_roadmaps(self) -> RoadmapError | None:
        owner = require_user(self._session)
        try:
            response = await require_query(
                self._gateway, Concept.OBJECT_MANAGER, "_getUserAssignedObjects",
                {"owner": owner},
            )
            roadmaps = response.records(AssignedObject)
        except RemoteFailureError:
            self.state.roadmaps = []
            self.state.touch()
            raise
        self.state.roadmaps = roadmaps
        self.state.touch()
        return None

    @returns_error
    async def create_roadmap(
        self, title: str, description: str = "",
    ) -> RoadmapError | None:
        error = check_title_present(title, "roadmap title")
        if error:
            return error
        owner = require_user(self._session)
        title = title.strip()

        created = await require_action(
            self._gateway, DAG, "createEmptyGraph",
            {"owner": owner, "graphTitle": title},
        )
        graph_id = require_field(created, "newGraph", DAG, "createEmptyGraph")

        handle = await require_action(
            self._gateway, Concept.OBJECT_MANAGER, "createAssignedObject",
            {
                "owner": owner,
                "object": graph_id,
                "title": title,
                "description": description,
            },
        )
        require_field(
            handle, "assignedObject", Concept.OBJECT_MANAGER, "createAssignedObject",
        )
        logger.info("Roadmap created", extra={"roadmap_id": graph_id})
        return await self._refresh_roadmaps()

    @returns_error
    async def delete_roadmap(self, roadmap_id: str) -> RoadmapError | None:
        user = require_user(self._session)
        roadmap = self.state.find_roadmap(roadmap_id)
        if roadmap is None:
            raise NotFoundError("Roadmap", roadmap_id)
        error = check_roadmap_owner(roadmap, user)
        if error:
            return error

        await require_action(self._gateway, DAG, "deleteGraph", {"graph": roadmap.object})
        await require_action(
            self._gateway, Concept.OBJECT_MANAGER, "deleteAssignedObject",
            {"assignedObject": roadmap.id},
        )

        self.state.roadmaps = [r for r in self.state.roadmaps if r.id != roadmap_id]
        self.state.touch()
        current = self.state.current_roadmap
        if current is not None and current.id == roadmap_id:
            self._cancel_prefetch()
            self.state.unload()
        logger.info("Roadmap deleted", extra={"roadmap_id": roadmap_id})
        return None

    @returns_error
    async def share_roadmap(self, username: str) -> RoadmapError | None:
        error = check_roadmap_loaded(self.state)
        if error:
            return error
        user = require_user(self._session)

        found = await require_query(
            self._gateway, Concept.USER_AUTHENTICATION, "_getUserByUsername",
            {"username": username.strip()},
        )
        target = found.first_value("user")
        if not target:
            raise NotFoundError("User", username)
        if target == user:
            raise ConflictError("You cannot share a roadmap with yourself")

        await require_action(
            self._gateway, Concept.SHARING, "share",
            {"owner": user, "file": self.state.current_graph_id, "user": target},
        )
        return None

    # ─── Loading ─────────────────────────────────────────────────

    @returns_error
    async def load_roadmap(self, roadmap_id: str) -> RoadmapError | None:
        roadmap = self.state.find_roadmap(roadmap_id) or self._sharing.find(roadmap_id)
        if roadmap is None:
            raise NotFoundError("Roadmap", roadmap_id)

        self._cancel_prefetch()
        user = self._session.current_user
        self.state.begin_loading(roadmap, is_shared=roadmap.owner != user)
        graph_id = roadmap.object
        try:
            node_rows = await require_query(
                self._gateway, DAG, "_getGraphNodes", {"graph": graph_id},
            )
            nodes = node_rows.records(Node)
            edge_rows = await require_query(
                self._gateway, DAG, "_getGraphEdges", {"graph": graph_id},
            )
            edges = edge_rows.records(Edge)
        except RoadmapError:
            self.state.load_state = RoadmapLoadState.ERROR
            self.state.touch()
            raise

        self.state.nodes = nodes
        self.state.edges = edges
        self.state.load_state = RoadmapLoadState.LOADED
        self.state.touch()
        self._prefetch = asyncio.create_task(self._prefetch_resources(nodes))
        return None

    async def wait_for_prefetch(self) -> None:
        """Join the background resource/check prefetch of the last load."""
        if self._prefetch is not None:
            await self._prefetch

    def _cancel_prefetch(self) -> None:
        """Stop loading lists for a graph that is no longer the loaded one."""
        if self._prefetch is not None and not self._prefetch.done():
            self._prefetch.cancel()
        self._prefetch = None

    async def _prefetch_resources(self, nodes: list[Node]) -> None:
        await gather_tolerant(
            (self._resources.load_resources(n.enrichment) for n in nodes),
            label="roadmap resource prefetch",
        )

    # ─── Nodes ───────────────────────────────────────────────────

    @returns_error
    async def add_node(
        self, title: str, x: float | None = None, y: float | None = None,
    ) -> RoadmapError | None:
        error = validate_new_node(self.state, title)
        if error:
            return error
        owner = require_user(self._session)
        title = title.strip()
        graph_id = self.state.current_graph_id
        roadmap_title = self.state.current_roadmap.title

        listed = await require_action(
            self._gateway, Concept.RESOURCE_LIST, "createResourceList",
            {"owner": owner, "listTitle": resource_list_title(roadmap_title, title)},
        )
        list_id = require_field(
            listed, "newResourceList", Concept.RESOURCE_LIST, "createResourceList",
        )

        added = await require_action(
            self._gateway, DAG, "addNode",
            {"graph": graph_id, "nodeTitle": title, "enrichment": list_id},
        )
        node_id = require_field(added, "newNode", DAG, "addNode")

        self.state.nodes = [
            *self.state.nodes,
            Node(id=node_id, parent=graph_id, title=title, enrichment=list_id, x=x, y=y),
        ]
        self.state.touch()
        return None

    @returns_error
    async def update_node_title(
        self, node_id: str, new_title: str,
    ) -> RoadmapError | None:
        error = check_roadmap_loaded(self.state)
        if error:
            return error
        node = self.state.find_node(node_id)
        if node is None:
            raise NotFoundError("Node", node_id)
        error = (
            check_title_present(new_title, "node title")
            or check_node_title_unique(self.state, new_title, exclude_node_id=node_id)
        )
        if error:
            return error

        title = new_title.strip()
        await require_action(
            self._gateway, DAG, "changeNodeTitle",
            {"graph": self.state.current_graph_id, "node": node_id, "newNodeTitle": title},
        )
        self.state.nodes = [
            n.model_copy(update={"title": title}) if n.id == node_id else n
            for n in self.state.nodes
        ]
        self.state.touch()
        return None

    @returns_error
    async def delete_node(self, node_id: str) -> RoadmapError | None:
        node = self.state.find_node(node_id)
        if node is None:
            raise NotFoundError("Node", node_id)

        await require_action(self._gateway, DAG, "removeNode", {"node": node_id})

        try:
            await require_action(
                self._gateway, Concept.RESOURCE_LIST, "deleteResourceList",
                {"resourceList": node.enrichment},
            )
        except RoadmapError as e:
            # Node removal stands; the list is orphaned on the backend
            logger.warning(
                f"Node deleted but its resource list was not: {e.message}",
                extra={"node_id": node_id, "list_id": node.enrichment},
            )

        self._resources.drop_list(node.enrichment)
        self.state.remove_node(node_id)
        return None

    def select_node(self, node_id: str) -> Node | None:
        node = self.state.find_node(node_id)
        self.state.selected_node_id = node.id if node else None
        self.state.touch()
        return node

    @returns_error
    async def open_node(self, node_id: str) -> RoadmapError | None:
        """Select a node and load its resource list."""
        node = self.select_node(node_id)
        if node is None:
            raise NotFoundError("Node", node_id)
        return await self._resources.load_resources(node.enrichment)

    def clear_selection(self) -> None:
        self.state.selected_node_id = None
        self.state.touch()

    # ─── Edges ───────────────────────────────────────────────────

    @returns_error
    async def add_edge(self, source_id: str, target_id: str) -> RoadmapError | None:
        error = validate_new_edge(self.state, source_id, target_id)
        if error:
            return error
        enrichment = self.state.find_node(source_id).enrichment

        added = await require_action(
            self._gateway, DAG, "addEdge",
            {
                "graph": self.state.current_graph_id,
                "sourceNode": source_id,
                "targetNode": target_id,
                "enrichment": enrichment,
            },
        )
        edge_id = require_field(added, "newEdge", DAG, "addEdge")

        self.state.edges = [
            *self.state.edges,
            Edge(id=edge_id, source=source_id, target=target_id, enrichment=enrichment),
        ]
        self.state.touch()
        return None

    @returns_error
    async def delete_edge(self, edge_id: str) -> RoadmapError | None:
        if self.state.find_edge(edge_id) is None:
            raise NotFoundError("Edge", edge_id)
        await require_action(self._gateway, DAG, "removeEdge", {"edge": edge_id})
        self.state.remove_edge(edge_id)
        return None

    def reset(self) -> None:
        """Drop every roadmap and the loaded graph (logout)."""
        self._cancel_prefetch()
        self.state = RoadmapState(revision=self.state.revision + 1)
