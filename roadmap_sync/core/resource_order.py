"""Resource Ordering — pure splice-and-renumber for optimistic list reorders.

Invariants:
    - Output indices are exactly [0, len) in list order
    - Input list and its records are never mutated (copies returned)
    - from_index outside [0, len) is a ResourceNotFoundError
    - to_index is clamped into [0, len - 1]
"""

from roadmap_sync.core.errors import ResourceNotFoundError
from roadmap_sync.schemas.concepts import IndexedResource


def clamp_target_index(length: int, to_index: int) -> int:
    return max(0, min(to_index, length - 1))


def renumber(resources: list[IndexedResource]) -> list[IndexedResource]:
    """Rewrite every index field to match its position."""
    return [
        r if r.index == i else r.model_copy(update={"index": i})
        for i, r in enumerate(resources)
    ]


def move_resource(
    resources: list[IndexedResource], list_id: str, from_index: int, to_index: int,
) -> list[IndexedResource]:
    """Move one entry and renumber. Raises ResourceNotFoundError on bad from_index."""
    if not 0 <= from_index < len(resources):
        raise ResourceNotFoundError(list_id, from_index)
    reordered = list(resources)
    moved = reordered.pop(from_index)
    reordered.insert(clamp_target_index(len(resources), to_index), moved)
    return renumber(reordered)


def is_dense(resources: list[IndexedResource]) -> bool:
    """True when index fields form a contiguous permutation of [0, len)."""
    return sorted(r.index for r in resources) == list(range(len(resources)))
