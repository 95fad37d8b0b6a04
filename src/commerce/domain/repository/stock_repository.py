"""Abstract repository for the StockEntry aggregate.

Defined in the domain layer so the domain never depends on
infrastructure.  Implementations must return independent copies,
perform a compare-and-swap save (see ``versioning``) and strip the
location and variant IDs on lookup (see ``normalize_stock_key``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from commerce.domain.model.stock import StockEntry


class StockRepository(ABC):

    @abstractmethod
    def get(self, location_id: str, variant_id: str) -> StockEntry | None:
        """Return the entry for a (location, variant) pair, or None."""

    @abstractmethod
    def get_by_id(self, stock_id: str) -> StockEntry | None:
        """Return an entry by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[StockEntry]:
        """Return every stock entry."""

    def list_by_location(self, location_id: str) -> list[StockEntry]:
        location_id = location_id.strip()
        return [e for e in self.list_all() if e.location_id == location_id]

    def list_by_variant(self, variant_id: str) -> list[StockEntry]:
        variant_id = variant_id.strip()
        return [e for e in self.list_all() if e.variant_id == variant_id]

    def list_low_stock(self) -> list[StockEntry]:
        return [e for e in self.list_all() if e.is_low_stock]

    @abstractmethod
    def save(self, entry: StockEntry) -> int:
        """Persist a new or updated entry and return the stored version.

        Raises ConcurrentModification if the stored version changed since
        the entry was loaded.
        """
