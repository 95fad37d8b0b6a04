"""JSON-file-backed implementation of StockRepository."""

from __future__ import annotations

from commerce.domain.model.stock import StockEntry, normalize_stock_key
from commerce.domain.repository.stock_repository import StockRepository
from commerce.infrastructure.persistence.json_file import JsonFileRepository


class JsonStockRepository(JsonFileRepository, StockRepository):
    """Records are keyed by (location_id, variant_id), one entry per pair."""

    # --- StockRepository interface --------------------------------------------

    def get(self, location_id: str, variant_id: str) -> StockEntry | None:
        location_id, variant_id = normalize_stock_key(location_id, variant_id)
        raw = self._find(
            lambda r: r["location_id"] == location_id and r["variant_id"] == variant_id
        )
        return self._to_domain(raw) if raw is not None else None

    def get_by_id(self, stock_id: str) -> StockEntry | None:
        raw = self._find(lambda r: r["id"] == stock_id)
        return self._to_domain(raw) if raw is not None else None

    def list_all(self) -> list[StockEntry]:
        return [self._to_domain(raw) for raw in self._load_raw()]

    def save(self, entry: StockEntry) -> int:
        return self._upsert(("location_id", "variant_id"), entry, self._to_raw(entry))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(entry: StockEntry) -> dict:
        return {
            "id": entry.id,
            "location_id": entry.location_id,
            "variant_id": entry.variant_id,
            "quantity_on_hand": entry.quantity_on_hand,
            "quantity_reserved": entry.quantity_reserved,
            "low_stock_threshold": entry.low_stock_threshold,
        }

    @staticmethod
    def _to_domain(raw: dict) -> StockEntry:
        return StockEntry(
            id=raw["id"],
            location_id=raw["location_id"],
            variant_id=raw["variant_id"],
            quantity_on_hand=raw["quantity_on_hand"],
            quantity_reserved=raw["quantity_reserved"],
            low_stock_threshold=raw["low_stock_threshold"],
            version=raw["version"],
            persisted_version=raw["version"],
        )
