"""Remote Call Helpers — turn fail-soft gateway results into RemoteFailureError.

Invariants:
    - A gateway error string becomes RemoteFailureError with the message unchanged
    - ErrorContext records which concept/operation failed
    - require_field fails when a successful action omits the expected key
"""

import logging
from typing import Any

from roadmap_sync.core.domain_types import Concept, UserId
from roadmap_sync.core.errors import (
    ErrorContext, RemoteFailureError, UnauthenticatedError,
)
from roadmap_sync.core.gateway_protocols import ConceptGateway, SessionContext
from roadmap_sync.schemas.gateway import GatewayResponse

logger = logging.getLogger(__name__)


async def require_action(
    gateway: ConceptGateway, concept: Concept, action: str, body: dict[str, Any],
) -> GatewayResponse:
    response = await gateway.invoke_action(concept.value, action, body)
    return _ensure_ok(response, concept, action)


async def require_query(
    gateway: ConceptGateway, concept: Concept, query: str, body: dict[str, Any],
) -> GatewayResponse:
    response = await gateway.invoke_query(concept.value, query, body)
    return _ensure_ok(response, concept, query)


def require_field(
    response: GatewayResponse, key: str, concept: Concept, operation: str,
) -> str:
    """Read the id an action returns (e.g. newGraph), or fail."""
    value = response.value_of(key)
    if not value:
        raise RemoteFailureError(
            f"{concept.value}.{operation} returned no {key}",
            ErrorContext(concept=concept.value, operation=operation),
        )
    return str(value)


def require_user(session: SessionContext) -> UserId:
    user = session.current_user
    if user is None:
        raise UnauthenticatedError()
    return user


def _ensure_ok(
    response: GatewayResponse, concept: Concept, operation: str,
) -> GatewayResponse:
    if response.ok:
        return response
    logger.warning(
        f"Remote call failed: {response.error}",
        extra={"concept": concept.value, "operation": operation},
    )
    raise RemoteFailureError(
        response.error or "Unknown error occurred",
        ErrorContext(concept=concept.value, operation=operation),
    )
