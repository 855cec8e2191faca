"""Service test fixtures — fake backend, session, and a fully wired client.

Invariants:
    - Every test gets a fresh FakeBackend (no state shared across tests)
    - The session is signed in as ALICE unless a test signs out
    - `client` wires every component exactly as RoadmapClient does in production

Design Decisions:
    - Components reached through the client facade: tests exercise the same
      wiring (shared gateway, shared completion cache) the application uses
"""

import pytest

from roadmap_sync.infrastructure.session_context import InMemorySessionContext
from roadmap_sync.services.roadmap_client import RoadmapClient

from tests.services.fake_backend import ALICE, BOB, FakeBackend, FakeBlobStorage


@pytest.fixture
def backend():
    b = FakeBackend()
    b.add_user(ALICE, "alice")
    b.add_user(BOB, "bob")
    return b


@pytest.fixture
def storage(backend):
    return FakeBlobStorage(backend)


@pytest.fixture
def session():
    return InMemorySessionContext(ALICE, "session-1")


@pytest.fixture
def client(backend, session, storage):
    return RoadmapClient(backend, session, storage)


@pytest.fixture
async def loaded_roadmap(client, backend):
    """Alice's 'Algorithms' roadmap, created and loaded (no nodes yet)."""
    assert await client.dag.create_roadmap("Algorithms", "CS basics") is None
    roadmap = client.dag.state.roadmaps[0]
    assert await client.dag.load_roadmap(roadmap.id) is None
    return roadmap
