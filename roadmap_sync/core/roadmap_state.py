"""Roadmap State — in-memory mirror of the user's roadmaps and the loaded graph.

Invariants:
    - At most one roadmap is loaded; loading another discards nodes, edges, selection
    - Node titles are unique within `nodes` (guarded by enforce_graph before mutation)
    - At most one edge per ordered (source, target) pair
    - `revision` increments on every mutation so consumers can poll for changes

Design Decisions:
    - Pure dataclass, no IO: DagStateManager owns the only instance and is the
      only writer; other components read it
    - Lists replaced, not mutated in place, when filtering: readers holding the
      old list keep a consistent snapshot
"""

from dataclasses import dataclass, field

from roadmap_sync.core.domain_types import RoadmapLoadState
from roadmap_sync.schemas.concepts import AssignedObject, Edge, Node


@dataclass
class RoadmapState:
    """Graph, node and edge state owned by the DAG state manager."""

    roadmaps: list[AssignedObject] = field(default_factory=list)

    # Loaded roadmap
    current_roadmap: AssignedObject | None = None
    load_state: RoadmapLoadState = RoadmapLoadState.UNLOADED
    is_shared: bool = False
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    selected_node_id: str | None = None

    revision: int = 0

    @property
    def current_graph_id(self) -> str | None:
        if self.current_roadmap is None:
            return None
        return self.current_roadmap.object

    @property
    def selected_node(self) -> Node | None:
        if self.selected_node_id is None:
            return None
        return self.find_node(self.selected_node_id)

    def touch(self) -> None:
        self.revision += 1

    def find_roadmap(self, roadmap_id: str) -> AssignedObject | None:
        return next((r for r in self.roadmaps if r.id == roadmap_id), None)

    def find_node(self, node_id: str) -> Node | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def find_edge(self, edge_id: str) -> Edge | None:
        return next((e for e in self.edges if e.id == edge_id), None)

    def begin_loading(self, roadmap: AssignedObject, is_shared: bool) -> None:
        """Discard the previous graph unconditionally and enter LOADING."""
        self.current_roadmap = roadmap
        self.is_shared = is_shared
        self.nodes = []
        self.edges = []
        self.selected_node_id = None
        self.load_state = RoadmapLoadState.LOADING
        self.touch()

    def unload(self) -> None:
        self.current_roadmap = None
        self.is_shared = False
        self.nodes = []
        self.edges = []
        self.selected_node_id = None
        self.load_state = RoadmapLoadState.UNLOADED
        self.touch()

    def remove_node(self, node_id: str) -> None:
        """Drop a node, every edge touching it, and its selection."""
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [
            e for e in self.edges if e.source != node_id and e.target != node_id
        ]
        if self.selected_node_id == node_id:
            self.selected_node_id = None
        self.touch()

    def remove_edge(self, edge_id: str) -> None:
        self.edges = [e for e in self.edges if e.id != edge_id]
        self.touch()
