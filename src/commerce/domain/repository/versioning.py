"""Optimistic concurrency check shared by every repository implementation.

Aggregates carry two counters:

- ``version``: bumped by every successful mutation
- ``persisted_version``: the stored version observed at load time
  (``None`` for an aggregate that has never been saved)

A save is a compare-and-swap: it succeeds only if the stored version is
still the one the caller loaded.
"""

from __future__ import annotations

from typing import Protocol

from commerce.domain.exceptions import ConcurrentModification


class Versioned(Protocol):
    version: int
    persisted_version: int | None


def check_version(stored_version: int | None, aggregate: Versioned, key: str) -> None:
    """Raise ConcurrentModification unless ``aggregate`` may overwrite storage.

    ``stored_version`` is ``None`` when nothing is stored under ``key``.
    """
    expected = aggregate.persisted_version
    if expected is None:
        if stored_version is not None:
            raise ConcurrentModification(f"{key} was created concurrently")
        return
    if stored_version != expected:
        raise ConcurrentModification(
            f"{key} was modified concurrently "
            f"(expected version {expected}, found {stored_version})"
        )


def mark_persisted(aggregate: Versioned) -> int:
    """Record a successful save on the in-memory aggregate."""
    aggregate.persisted_version = aggregate.version
    return aggregate.version
