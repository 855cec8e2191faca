"""Tolerant Batch Join — run independent remote lookups concurrently, keep the survivors.

Invariants:
    - The join itself never raises (CancelledError excepted)
    - Result order matches input order; a failed item becomes None
    - An item "fails" if it raises, or returns a RoadmapError value

Design Decisions:
    - asyncio.gather(return_exceptions=True) over TaskGroup: a TaskGroup cancels
      siblings on the first failure, which is the opposite of what batches need
    - Failures logged once here, so callers only filter Nones
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_tolerant(
    awaitables: Iterable[Awaitable[T]], label: str = "batch",
) -> list[T | None]:
    """Await all items concurrently; map each failure to None."""
    items = list(awaitables)
    if not items:
        return []
    outcomes = await asyncio.gather(*items, return_exceptions=True)

    results: list[T | None] = []
    failed = 0
    for outcome in outcomes:
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        # RoadmapError values returned by total operations count as failures too
        if isinstance(outcome, BaseException):
            failed += 1
            logger.warning(
                f"{label}: item failed: {outcome}",
                extra={"error_code": getattr(outcome, "code", None)},
            )
            results.append(None)
        else:
            results.append(outcome)

    if failed:
        logger.warning(
            f"{label}: {failed}/{len(items)} item(s) failed",
            extra={"failed": failed, "total": len(items)},
        )
    return results


def survivors(results: Iterable[T | None]) -> list[T]:
    """Drop the Nones left by failed items."""
    return [r for r in results if r is not None]
