"""Domain Types — identity aliases, lifecycle enums, and backend concept names.

Invariants:
    - Every backend identifier is an opaque string wrapped in a NewType
    - Concept/operation names live here and nowhere else — services import them
    - RoadmapLoadState encodes the only legal lifecycle of the loaded roadmap

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON request bodies without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)
GraphId = NewType("GraphId", str)
AssignedObjectId = NewType("AssignedObjectId", str)
NodeId = NewType("NodeId", str)
EdgeId = NewType("EdgeId", str)
ResourceListId = NewType("ResourceListId", str)
ResourceId = NewType("ResourceId", str)
CheckId = NewType("CheckId", str)
FileId = NewType("FileId", str)


# ─── Enums ───────────────────────────────────────────────────────

class RoadmapLoadState(str, Enum):
    """Lifecycle of the currently loaded roadmap (one at a time)."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class Concept(str, Enum):
    """Backend concepts addressed through the gateway."""
    OBJECT_MANAGER = "ObjectManager"
    ENRICHED_DAG = "EnrichedDAG"
    RESOURCE_LIST = "ResourceList"
    CHECKING = "Checking"
    FILE_UPLOADING = "FileUploading"
    USER_AUTHENTICATION = "UserAuthentication"
    SHARING = "Sharing"


# ─── Naming conventions shared with the backend ─────────────────

RESOURCE_ID_PREFIX = "resource-"
RESOURCE_FILE_SUFFIX = ".md"


def resource_filename(resource_id: ResourceId) -> str:
    """Deterministic file name holding a resource's free-text content."""
    return f"{RESOURCE_ID_PREFIX}{resource_id}{RESOURCE_FILE_SUFFIX}"


def resource_list_title(roadmap_title: str, node_title: str) -> str:
    """List title unique per (owner, title): scoped by roadmap and node."""
    return f"Resources for {roadmap_title}: {node_title}"
