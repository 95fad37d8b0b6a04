"""Application service: Show Stock use case (query)."""

from __future__ import annotations

from commerce.application.dto import StockLineDTO, stock_to_dto
from commerce.domain.repository.stock_repository import StockRepository


class ShowStockHandler:

    def __init__(self, stock_repo: StockRepository) -> None:
        self._stock_repo = stock_repo

    def handle(
        self, location_id: str | None = None, low_stock_only: bool = False
    ) -> list[StockLineDTO]:
        if low_stock_only:
            entries = self._stock_repo.list_low_stock()
        else:
            entries = self._stock_repo.list_all()
        if location_id is not None:
            location_id = location_id.strip()
            entries = [e for e in entries if e.location_id == location_id]
        entries.sort(key=lambda e: (e.location_id, e.variant_id))
        return [stock_to_dto(e) for e in entries]
