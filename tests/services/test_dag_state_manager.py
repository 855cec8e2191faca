"""DAG State Manager — roadmap lifecycle, node/edge mutations, load state.

Tests cover:
    - Own roadmap listing (replace, unauthenticated, remote failure)
    - Two-step roadmap create/delete ordering and ownership
    - Loading (state machine, shared flag, background prefetch)
    - Prefetch runs behind the load result and is cancelled when superseded
    - Node title uniqueness and list-before-node ordering
    - Node deletion with non-fatal list deletion failure
    - Edge uniqueness and enrichment copying
    - Sharing by username
"""

import asyncio
import logging

import pytest

from roadmap_sync.core.domain_types import RoadmapLoadState
from roadmap_sync.core.errors import (
    ConflictError,
    NotFoundError,
    NotOwnerError,
    RemoteFailureError,
    UnauthenticatedError,
    ValidationError,
)

from tests.services.fake_backend import ALICE, BOB


# ==============================================================================
# Own roadmaps
# ==============================================================================


async def test_list_own_roadmaps_replaces_local_collection(client, backend):
    backend.seed_roadmap(ALICE, "First")
    await client.dag.list_own_roadmaps()
    backend.seed_roadmap(ALICE, "Second")
    backend.seed_roadmap(BOB, "Not mine")

    result = await client.dag.list_own_roadmaps()

    assert [r.title for r in result] == ["First", "Second"]
    assert client.dag.state.roadmaps == result


async def test_list_own_roadmaps_requires_user(client, session, backend):
    session.sign_out()
    result = await client.dag.list_own_roadmaps()
    assert isinstance(result, UnauthenticatedError)
    assert backend.calls == []


async def test_list_own_roadmaps_remote_failure_clears_list(client, backend):
    backend.seed_roadmap(ALICE, "First")
    await client.dag.list_own_roadmaps()
    backend.fail("ObjectManager", "_getUserAssignedObjects", "db down")

    result = await client.dag.list_own_roadmaps()

    assert isinstance(result, RemoteFailureError)
    assert result.message == "db down"
    assert client.dag.state.roadmaps == []


# ==============================================================================
# Create / delete
# ==============================================================================


async def test_create_roadmap_creates_graph_then_handle_then_refreshes(client, backend):
    error = await client.dag.create_roadmap("Algorithms", "CS basics")

    assert error is None
    assert backend.ops() == [
        "createEmptyGraph", "createAssignedObject", "_getUserAssignedObjects",
    ]
    roadmap = client.dag.state.roadmaps[0]
    assert roadmap.title == "Algorithms"
    assert roadmap.description == "CS basics"
    assert roadmap.object in backend.graphs


async def test_create_roadmap_graph_failure_creates_nothing(client, backend):
    backend.fail("EnrichedDAG", "createEmptyGraph", "graph store full")

    error = await client.dag.create_roadmap("Algorithms")

    assert isinstance(error, RemoteFailureError)
    assert str(error) == "graph store full"
    assert backend.ops() == ["createEmptyGraph"]
    assert client.dag.state.roadmaps == []


async def test_create_roadmap_handle_failure_returns_first_error(client, backend):
    backend.fail("ObjectManager", "createAssignedObject", "handle rejected")

    error = await client.dag.create_roadmap("Algorithms")

    assert str(error) == "handle rejected"
    assert "_getUserAssignedObjects" not in backend.ops()
    assert client.dag.state.roadmaps == []


async def test_create_roadmap_rejects_blank_title(client, backend):
    error = await client.dag.create_roadmap("   ")
    assert isinstance(error, ValidationError)
    assert backend.calls == []


async def test_delete_roadmap_deletes_graph_before_handle(client, backend, loaded_roadmap):
    backend.calls.clear()

    error = await client.dag.delete_roadmap(loaded_roadmap.id)

    assert error is None
    assert backend.ops() == ["deleteGraph", "deleteAssignedObject"]
    assert client.dag.state.roadmaps == []


async def test_delete_loaded_roadmap_clears_dependent_state(client, loaded_roadmap):
    await client.dag.add_node("Sorting")
    client.dag.select_node(client.dag.state.nodes[0].id)

    await client.dag.delete_roadmap(loaded_roadmap.id)

    state = client.dag.state
    assert state.current_roadmap is None
    assert state.nodes == []
    assert state.edges == []
    assert state.selected_node_id is None
    assert state.load_state == RoadmapLoadState.UNLOADED


async def test_delete_roadmap_rejects_non_owner_before_remote(client, backend, session):
    assigned_id, _ = backend.seed_roadmap(ALICE, "Shared")
    await client.dag.list_own_roadmaps()
    session.sign_in(BOB, "session-2")
    backend.calls.clear()

    error = await client.dag.delete_roadmap(assigned_id)

    assert isinstance(error, NotOwnerError)
    assert backend.calls == []


async def test_delete_unknown_roadmap_is_not_found(client):
    error = await client.dag.delete_roadmap("nope")
    assert isinstance(error, NotFoundError)


# ==============================================================================
# Loading
# ==============================================================================


async def test_load_roadmap_loads_nodes_then_edges(client, backend):
    assigned_id, graph_id = backend.seed_roadmap(ALICE, "Algorithms")
    await client.dag.list_own_roadmaps()
    backend.calls.clear()

    error = await client.dag.load_roadmap(assigned_id)

    assert error is None
    assert backend.ops()[:2] == ["_getGraphNodes", "_getGraphEdges"]
    assert client.dag.state.load_state == RoadmapLoadState.LOADED
    assert client.dag.state.current_graph_id == graph_id
    assert client.dag.state.is_shared is False


async def test_load_roadmap_failure_enters_error_state(client, backend):
    assigned_id, _ = backend.seed_roadmap(ALICE, "Algorithms")
    await client.dag.list_own_roadmaps()
    backend.fail("EnrichedDAG", "_getGraphEdges", "edges unavailable")

    error = await client.dag.load_roadmap(assigned_id)

    assert str(error) == "edges unavailable"
    assert client.dag.state.load_state == RoadmapLoadState.ERROR


async def test_load_roadmap_discards_previous_graph(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    other_id, _ = backend.seed_roadmap(ALICE, "Other")
    await client.dag.list_own_roadmaps()

    await client.dag.load_roadmap(other_id)

    assert client.dag.state.current_roadmap.id == other_id
    assert client.dag.state.nodes == []


async def test_load_unknown_roadmap_is_not_found(client):
    error = await client.dag.load_roadmap("missing")
    assert isinstance(error, NotFoundError)
    assert client.dag.state.load_state == RoadmapLoadState.UNLOADED


async def test_load_shared_roadmap_sets_shared_flag(client, backend):
    _, graph_id = backend.seed_roadmap(BOB, "Bob's map")
    backend.shares.append((graph_id, ALICE))
    shared = await client.dag.list_shared_roadmaps()

    error = await client.dag.load_roadmap(shared[0].id)

    assert error is None
    assert client.dag.state.is_shared is True


async def test_load_roadmap_prefetches_resources_and_checks(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    node = client.dag.state.nodes[0]
    await client.resources.append_resource(node.enrichment, "Quicksort")
    client.resources.clear()
    client.completion.clear()

    await client.dag.load_roadmap(loaded_roadmap.id)
    await client.dag.wait_for_prefetch()

    resources = client.resources.resources(node.enrichment)
    assert [r.title for r in resources] == ["Quicksort"]
    assert client.completion.cached(resources[0].resource) is not None


async def test_prefetch_failure_does_not_fail_load(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    backend.fail("ResourceList", "_getListResources", "lists offline")

    error = await client.dag.load_roadmap(loaded_roadmap.id)
    await client.dag.wait_for_prefetch()

    assert error is None
    assert client.dag.state.load_state == RoadmapLoadState.LOADED


async def test_load_roadmap_returns_before_prefetch_finishes(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    node = client.dag.state.nodes[0]
    client.resources.clear()
    backend.latency = 0.01

    error = await client.dag.load_roadmap(loaded_roadmap.id)

    assert error is None
    assert client.dag.state.load_state == RoadmapLoadState.LOADED
    assert not client.dag._prefetch.done()
    assert not client.resources.is_loaded(node.enrichment)

    await client.dag.wait_for_prefetch()

    assert client.resources.is_loaded(node.enrichment)


async def test_open_node_during_prefetch_creates_one_check_per_resource(
    client, backend, loaded_roadmap,
):
    await client.dag.add_node("Sorting")
    node = client.dag.state.nodes[0]
    await client.resources.append_resource(node.enrichment, "Quicksort")
    client.resources.clear()
    client.completion.clear()
    backend.checks.clear()
    backend.latency = 0.01

    await client.dag.load_roadmap(loaded_roadmap.id)
    assert await client.dag.open_node(node.id) is None
    await client.dag.wait_for_prefetch()

    [resource] = client.resources.resources(node.enrichment)
    assert len(backend.checks) == 1
    assert client.completion.cached(resource.resource).id == next(iter(backend.checks))


async def test_reloading_cancels_previous_prefetch(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    backend.latency = 0.01
    await client.dag.load_roadmap(loaded_roadmap.id)
    stale = client.dag._prefetch

    await client.dag.load_roadmap(loaded_roadmap.id)

    with pytest.raises(asyncio.CancelledError):
        await stale
    assert client.dag._prefetch is not stale
    await client.dag.wait_for_prefetch()


async def test_deleting_loaded_roadmap_cancels_prefetch(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    backend.latency = 0.02
    await client.dag.load_roadmap(loaded_roadmap.id)
    pending = client.dag._prefetch

    assert await client.dag.delete_roadmap(loaded_roadmap.id) is None

    assert client.dag._prefetch is None
    with pytest.raises(asyncio.CancelledError):
        await pending


# ==============================================================================
# Nodes
# ==============================================================================


async def test_add_node_creates_list_before_node(client, backend, loaded_roadmap):
    backend.calls.clear()

    error = await client.dag.add_node("Sorting", x=10.0, y=20.0)

    assert error is None
    assert backend.ops() == ["createResourceList", "addNode"]
    node = client.dag.state.nodes[0]
    assert node.title == "Sorting"
    assert (node.x, node.y) == (10.0, 20.0)
    assert node.enrichment in backend.lists
    list_title = backend.bodies("ResourceList", "createResourceList")[0]["listTitle"]
    assert "Algorithms" in list_title and "Sorting" in list_title


async def test_duplicate_node_title_is_conflict(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    backend.calls.clear()

    error = await client.dag.add_node(" Sorting ")

    assert isinstance(error, ConflictError)
    assert backend.calls == []
    assert len(client.dag.state.nodes) == 1


async def test_add_node_list_failure_never_creates_node(client, backend, loaded_roadmap):
    backend.fail("ResourceList", "createResourceList", "no lists")

    error = await client.dag.add_node("Sorting")

    assert str(error) == "no lists"
    assert "addNode" not in backend.ops()
    assert client.dag.state.nodes == []


async def test_add_node_requires_loaded_roadmap(client):
    error = await client.dag.add_node("Sorting")
    assert isinstance(error, NotFoundError)


async def test_update_node_title_renames_after_remote_success(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    node_id = client.dag.state.nodes[0].id

    error = await client.dag.update_node_title(node_id, "  Sorting algorithms ")

    assert error is None
    assert client.dag.state.nodes[0].title == "Sorting algorithms"
    assert backend.nodes[node_id]["title"] == "Sorting algorithms"


async def test_update_node_title_rejects_other_nodes_title(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    await client.dag.add_node("Graphs")
    graphs_id = client.dag.state.nodes[1].id
    backend.calls.clear()

    error = await client.dag.update_node_title(graphs_id, "Sorting")

    assert isinstance(error, ConflictError)
    assert backend.calls == []


async def test_update_node_title_keeps_local_title_on_remote_failure(
    client, backend, loaded_roadmap,
):
    await client.dag.add_node("Sorting")
    node_id = client.dag.state.nodes[0].id
    backend.fail("EnrichedDAG", "changeNodeTitle")

    error = await client.dag.update_node_title(node_id, "Searching")

    assert isinstance(error, RemoteFailureError)
    assert client.dag.state.nodes[0].title == "Sorting"


async def test_delete_node_removes_touching_edges_and_cache(client, backend, loaded_roadmap):
    await client.dag.add_node("A")
    await client.dag.add_node("B")
    await client.dag.add_node("C")
    a, b, c = client.dag.state.nodes
    await client.dag.add_edge(a.id, b.id)
    await client.dag.add_edge(b.id, c.id)
    await client.dag.add_edge(a.id, c.id)
    await client.dag.open_node(b.id)

    error = await client.dag.delete_node(b.id)

    assert error is None
    assert [n.id for n in client.dag.state.nodes] == [a.id, c.id]
    assert [(e.source, e.target) for e in client.dag.state.edges] == [(a.id, c.id)]
    assert client.dag.state.selected_node_id is None
    assert not client.resources.is_loaded(b.enrichment)
    assert b.enrichment not in backend.lists


async def test_delete_node_survives_list_deletion_failure(
    client, backend, loaded_roadmap, caplog,
):
    await client.dag.add_node("Sorting")
    node = client.dag.state.nodes[0]
    backend.fail("ResourceList", "deleteResourceList", "list locked")

    with caplog.at_level(logging.WARNING):
        error = await client.dag.delete_node(node.id)

    assert error is None
    assert client.dag.state.nodes == []
    assert node.enrichment in backend.lists
    assert any("list locked" in r.getMessage() for r in caplog.records)


async def test_delete_node_remote_failure_keeps_node(client, backend, loaded_roadmap):
    await client.dag.add_node("Sorting")
    backend.fail("EnrichedDAG", "removeNode", "nope")

    error = await client.dag.delete_node(client.dag.state.nodes[0].id)

    assert isinstance(error, RemoteFailureError)
    assert len(client.dag.state.nodes) == 1
    assert "deleteResourceList" not in backend.ops()


# ==============================================================================
# Edges
# ==============================================================================


async def test_add_edge_copies_source_enrichment(client, backend, loaded_roadmap):
    await client.dag.add_node("A")
    await client.dag.add_node("B")
    a, b = client.dag.state.nodes

    error = await client.dag.add_edge(a.id, b.id)

    assert error is None
    edge = client.dag.state.edges[0]
    assert edge.enrichment == a.enrichment
    assert backend.edges[edge.id]["enrichment"] == a.enrichment


async def test_duplicate_edge_is_conflict(client, backend, loaded_roadmap):
    await client.dag.add_node("A")
    await client.dag.add_node("B")
    a, b = client.dag.state.nodes
    await client.dag.add_edge(a.id, b.id)
    backend.calls.clear()

    error = await client.dag.add_edge(a.id, b.id)

    assert isinstance(error, ConflictError)
    assert backend.calls == []
    assert len(client.dag.state.edges) == 1


async def test_reverse_edge_is_a_distinct_pair(client, loaded_roadmap):
    await client.dag.add_node("A")
    await client.dag.add_node("B")
    a, b = client.dag.state.nodes
    await client.dag.add_edge(a.id, b.id)

    error = await client.dag.add_edge(b.id, a.id)

    assert error is None
    assert len(client.dag.state.edges) == 2


async def test_add_edge_unknown_source_is_not_found(client, backend, loaded_roadmap):
    await client.dag.add_node("B")
    error = await client.dag.add_edge("missing", client.dag.state.nodes[0].id)
    assert isinstance(error, NotFoundError)


async def test_delete_edge_removes_after_remote(client, backend, loaded_roadmap):
    await client.dag.add_node("A")
    await client.dag.add_node("B")
    a, b = client.dag.state.nodes
    await client.dag.add_edge(a.id, b.id)
    edge_id = client.dag.state.edges[0].id

    error = await client.dag.delete_edge(edge_id)

    assert error is None
    assert client.dag.state.edges == []
    assert edge_id not in backend.edges


# ==============================================================================
# Sharing
# ==============================================================================


async def test_share_roadmap_with_other_user(client, backend, loaded_roadmap):
    error = await client.dag.share_roadmap("bob")

    assert error is None
    assert backend.shares == [(loaded_roadmap.object, BOB)]


async def test_share_roadmap_with_self_is_conflict(client, backend, loaded_roadmap):
    error = await client.dag.share_roadmap("alice")

    assert isinstance(error, ConflictError)
    assert backend.shares == []


async def test_share_roadmap_unknown_user_is_not_found(client, loaded_roadmap):
    error = await client.dag.share_roadmap("carol")
    assert isinstance(error, NotFoundError)


async def test_revision_increments_on_mutation(client, loaded_roadmap):
    before = client.dag.state.revision
    await client.dag.add_node("Sorting")
    assert client.dag.state.revision > before
