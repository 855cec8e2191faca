"""Concept Schemas — Pydantic models for records returned by the backend concepts.

Invariants:
    - Backend identifiers arrive as `_id` and are exposed as `.id`
    - Unknown backend fields are ignored (backend may add fields freely)
    - Node.x / Node.y are client-only position hints, never sent to the backend

Design Decisions:
    - One module for every concept record: services validate gateway payloads
      here instead of passing raw dicts around
    - populate_by_name: tests and services may construct records with `id=`
"""

from pydantic import BaseModel, ConfigDict, Field


class ConceptRecord(BaseModel):
    """Base for backend records keyed by `_id`."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")


class Graph(ConceptRecord):
    owner: str
    title: str = ""


class AssignedObject(ConceptRecord):
    """Roadmap handle: owner + reference to the backing graph."""
    owner: str
    object: str
    title: str = ""
    description: str = ""


class Node(ConceptRecord):
    parent: str
    title: str
    enrichment: str
    x: float | None = None
    y: float | None = None


class Edge(ConceptRecord):
    source: str
    target: str
    enrichment: str


class ResourceList(ConceptRecord):
    title: str
    owner: str
    length: int = 0


class IndexedResource(ConceptRecord):
    """A resource's slot in a list. `resource` keys checks and content."""
    resource: str
    title: str
    list: str
    index: int


class Check(ConceptRecord):
    user: str
    object: str
    checked: bool = False


class UploadedFile(BaseModel):
    """Entry of FileUploading._getFilesByOwner."""
    model_config = ConfigDict(extra="ignore")

    file: str
    filename: str


class SharedFile(BaseModel):
    """Entry of Sharing._getSharedFiles."""
    model_config = ConfigDict(extra="ignore")

    file: str
