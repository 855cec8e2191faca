"""Client-side identifiers for records the backend only learns about on attach."""

import uuid

from roadmap_sync.core.domain_types import RESOURCE_ID_PREFIX, ResourceId


def new_resource_id() -> ResourceId:
    """Collision-resistant resource id (UUID4), prefixed for readability."""
    return ResourceId(f"{RESOURCE_ID_PREFIX}{uuid.uuid4().hex}")
