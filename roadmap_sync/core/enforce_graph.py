"""Graph Enforcement — local invariant checks run before any remote call.

Invariants:
    - All functions are PURE: no IO, no async, no side effects
    - Return a RoadmapError on violation, None on success
    - Titles are compared after trimming surrounding whitespace

Design Decisions:
    - Errors returned, not raised: callers short-circuit with `return error`
      and the gateway is never reached
"""

from roadmap_sync.core.errors import (
    ConflictError, NotFoundError, NotOwnerError, RoadmapError, ValidationError,
)
from roadmap_sync.core.roadmap_state import RoadmapState
from roadmap_sync.schemas.concepts import AssignedObject


def check_roadmap_loaded(state: RoadmapState) -> RoadmapError | None:
    if state.current_graph_id is None:
        return NotFoundError("Roadmap", "current")
    return None


def check_title_present(title: str, field: str = "title") -> RoadmapError | None:
    if not title.strip():
        return ValidationError(f"The {field} cannot be empty", field)
    return None


def check_node_title_unique(
    state: RoadmapState, title: str, exclude_node_id: str | None = None,
) -> RoadmapError | None:
    """No two nodes in the loaded graph may share a (trimmed) title."""
    wanted = title.strip()
    for node in state.nodes:
        if node.id != exclude_node_id and node.title == wanted:
            return ConflictError("A node with this title already exists")
    return None


def check_edge_unique(
    state: RoadmapState, source_id: str, target_id: str,
) -> RoadmapError | None:
    """At most one edge per ordered (source, target) pair."""
    for edge in state.edges:
        if edge.source == source_id and edge.target == target_id:
            return ConflictError("Edge already exists between these nodes")
    return None


def check_edge_endpoints(
    state: RoadmapState, source_id: str, target_id: str,
) -> RoadmapError | None:
    if state.find_node(source_id) is None:
        return NotFoundError("Source node", source_id)
    if state.find_node(target_id) is None:
        return NotFoundError("Target node", target_id)
    return None


def check_roadmap_owner(
    roadmap: AssignedObject, user_id: str,
) -> RoadmapError | None:
    if roadmap.owner != user_id:
        return NotOwnerError(roadmap.id)
    return None


def validate_new_node(state: RoadmapState, title: str) -> RoadmapError | None:
    """Composite: roadmap loaded + title present + title unique."""
    return (
        check_roadmap_loaded(state)
        or check_title_present(title, "node title")
        or check_node_title_unique(state, title)
    )


def validate_new_edge(
    state: RoadmapState, source_id: str, target_id: str,
) -> RoadmapError | None:
    """Composite: roadmap loaded + pair unique + both endpoints known."""
    return (
        check_roadmap_loaded(state)
        or check_edge_unique(state, source_id, target_id)
        or check_edge_endpoints(state, source_id, target_id)
    )
