"""Completion Cache — per-resource checked/unchecked state with get-or-create semantics.

Invariants:
    - At most one cached Check per resource per session
    - At most one in-flight lookup per resource; concurrent callers await it
    - Cache updated only after the backend confirms a mark/unmark
    - Mark/unmark are keyed by the check's id, never the resource id
    - Invalidated only by clear() (logout), never by list or content mutations

Design Decisions:
    - get_or_create_check is soft: any failure yields None so batch population
      and UI reads never have to handle errors
"""

import asyncio
import logging

from roadmap_sync.core.domain_types import Concept
from roadmap_sync.core.errors import NotFoundError, RoadmapError, returns_error
from roadmap_sync.core.gateway_protocols import ConceptGateway, SessionContext
from roadmap_sync.schemas.concepts import Check
from roadmap_sync.services.remote_calls import (
    require_action, require_field, require_query, require_user,
)

logger = logging.getLogger(__name__)


class CompletionCache:
    """Owns check-by-resource-id for the signed-in user."""

    def __init__(self, gateway: ConceptGateway, session: SessionContext):
        self._gateway = gateway
        self._session = session
        self._checks: dict[str, Check] = {}
        self._pending: dict[str, asyncio.Task[Check | None]] = {}

    def cached(self, resource_id: str) -> Check | None:
        return self._checks.get(resource_id)

    def is_checked(self, resource_id: str) -> bool:
        check = self._checks.get(resource_id)
        return check is not None and check.checked

    def clear(self) -> None:
        self._checks.clear()
        # In-flight lookups finish for their current waiters but are not cached
        self._pending.clear()

    async def get_or_create_check(self, resource_id: str) -> Check | None:
        """Cached check, else the backend's, else a freshly created unchecked one.

        Concurrent callers for the same resource share one lookup, so at most
        one createCheck is ever issued per resource.
        """
        cached = self._checks.get(resource_id)
        if cached is not None:
            return cached
        pending = self._pending.get(resource_id)
        if pending is None:
            pending = asyncio.create_task(self._obtain(resource_id))
            self._pending[resource_id] = pending
        # Shielded: one waiter being cancelled must not cancel the shared lookup
        return await asyncio.shield(pending)

    @returns_error
    async def toggle_completion(self, resource_id: str) -> RoadmapError | None:
        check = await self.get_or_create_check(resource_id)
        if check is None:
            raise NotFoundError("Check", resource_id)

        action = "markUnchecked" if check.checked else "markChecked"
        await require_action(
            self._gateway, Concept.CHECKING, action, {"check": check.id},
        )
        self._checks[resource_id] = check.model_copy(
            update={"checked": not check.checked},
        )

    async def _fetch_or_create(self, resource_id: str) -> Check:
        user = require_user(self._session)
        found = await require_query(
            self._gateway, Concept.CHECKING, "_getCheck",
            {"user": user, "object": resource_id},
        )
        existing = found.records(Check)
        if existing:
            return existing[0]

        created = await require_action(
            self._gateway, Concept.CHECKING, "createCheck",
            {"user": user, "object": resource_id},
        )
        check_id = require_field(created, "check", Concept.CHECKING, "createCheck")
        return Check(id=check_id, user=user, object=resource_id, checked=False)

    async def _obtain(self, resource_id: str) -> Check | None:
        task = asyncio.current_task()
        try:
            check = await self._fetch_or_create(resource_id)
        except RoadmapError as e:
            logger.warning(
                f"Could not obtain check: {e.message}",
                extra={"resource_id": resource_id, "error_code": e.code},
            )
            check = None
        finally:
            current = self._pending.get(resource_id) is task
            if current:
                del self._pending[resource_id]
        if check is not None and current:
            self._checks[resource_id] = check
        return check
