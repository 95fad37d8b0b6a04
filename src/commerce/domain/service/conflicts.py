"""Retry-on-conflict for optimistic concurrency.

Aggregates never retry on their own: the orchestrating caller re-reads,
re-validates and re-applies.  ``operation`` must therefore perform the
whole load -> mutate -> save cycle each time it is called.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import structlog

from commerce.domain.exceptions import ConcurrentModification

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3


def retry_on_conflict(
    operation: Callable[[], T],
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    description: str = "operation",
) -> T:
    """Run ``operation``, retrying while it raises ConcurrentModification.

    Business-rule failures raised on a retry (for example stock that a
    concurrent writer consumed) propagate immediately.  After ``attempts``
    conflicts the last ConcurrentModification is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrentModification:
            if attempt == attempts:
                logger.warning(
                    "conflict_retries_exhausted",
                    operation=description,
                    attempts=attempts,
                )
                raise
            logger.info("conflict_retry", operation=description, attempt=attempt)
    raise AssertionError("unreachable")
