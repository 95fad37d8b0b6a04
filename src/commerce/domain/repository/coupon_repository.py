"""Abstract repository for the Coupon aggregate.

Coupons are keyed by their upper-cased code; implementations normalize
the code on lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from commerce.domain.model.coupon import Coupon


class CouponRepository(ABC):

    @abstractmethod
    def get_by_code(self, code: str) -> Coupon | None:
        """Return a coupon by code (case-insensitive), or None."""

    @abstractmethod
    def list_all(self) -> list[Coupon]:
        """Return every coupon."""

    def list_active(self) -> list[Coupon]:
        return [c for c in self.list_all() if c.is_active]

    def list_valid(self, now: datetime | None = None) -> list[Coupon]:
        return [c for c in self.list_all() if c.is_valid(now)]

    def exists(self, code: str) -> bool:
        return self.get_by_code(code) is not None

    @abstractmethod
    def save(self, coupon: Coupon) -> int:
        """Persist a new or updated coupon and return the stored version."""

    @abstractmethod
    def delete(self, coupon: Coupon) -> None:
        """Remove a coupon loaded from this repository.

        Raises ConcurrentModification if it changed since it was loaded.
        """
