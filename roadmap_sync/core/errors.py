"""Error Hierarchy — typed, categorized failures for every roadmap operation.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Local invariant errors (auth, not found, conflict, validation) never reach the gateway
    - Remote errors keep the gateway's message unchanged
    - str(error) is always the human-readable message

Design Decisions:
    - Single hierarchy with RoadmapError base: service boundaries catch one type
      and hand it back as a value (operations are total, never raise to callers)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    EXTERNAL_API = "external_api"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    concept: str | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class RoadmapError(Exception):
    """Base exception for all roadmap client errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        return self.message

    def to_response(self) -> dict:
        """Convert to the {error: ...} envelope the UI layer displays."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "concept": self.context.concept,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Local Errors ───────────────────────────────────────────────

class UnauthenticatedError(RoadmapError):
    """Operation requires an active user and none is signed in."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "User not authenticated",
            "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context,
        )


class NotFoundError(RoadmapError):
    """Local lookup miss: entity absent from cached state."""
    def __init__(
        self, entity_type: str, entity_id: str, context: ErrorContext | None = None,
        code: str = "NOT_FOUND",
    ):
        super().__init__(
            f"{entity_type} '{entity_id}' not found",
            code, ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class ResourceNotFoundError(NotFoundError):
    """No resource at the requested position of a list."""
    def __init__(self, list_id: str, index: int, context: ErrorContext | None = None):
        super().__init__(
            "Resource", f"{list_id}[{index}]", context, code="RESOURCE_NOT_FOUND",
        )
        self.index = index


class ConflictError(RoadmapError):
    """Duplicate title, duplicate edge, or self-share."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context,
        )


class ValidationError(RoadmapError):
    """Caller input rejected before any remote call."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.field = field


class NotOwnerError(RoadmapError):
    """Mutation of a roadmap the current user does not own."""
    def __init__(self, roadmap_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Only the owner can modify roadmap '{roadmap_id}'",
            "NOT_OWNER", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context,
        )
        self.roadmap_id = roadmap_id


# ─── Remote Errors ──────────────────────────────────────────────

class RemoteFailureError(RoadmapError):
    """Gateway returned an error string or the transport failed."""
    def __init__(
        self, message: str, context: ErrorContext | None = None,
        code: str = "REMOTE_FAILURE",
    ):
        super().__init__(
            message, code, ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context,
        )


class ContentTypeMismatchError(RemoteFailureError):
    """Storage rejected an upload because its content-type header did not match."""
    def __init__(
        self, status: int, reason: str, expected: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Failed to upload content: {status} {reason}. "
            f"Content-type mismatch. Expected: {expected}",
            context, code="CONTENT_TYPE_MISMATCH",
        )
        self.expected = expected


# ─── Boundary ───────────────────────────────────────────────────

def returns_error(func):
    """Turn a raised RoadmapError into the operation's return value.

    Wrapped coroutines return None on success (or their own value) and the
    RoadmapError instance on failure. Other exceptions propagate.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except RoadmapError as e:
            logger.info(
                f"{func.__qualname__} failed: {e.message}",
                extra={"error_code": e.code},
            )
            return e
    return wrapper
