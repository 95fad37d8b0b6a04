"""Application services: stock adjustments outside the order flow.

Receiving, write-offs and threshold changes each run a retried
load -> mutate -> save cycle against one stock entry.
"""

from __future__ import annotations

from typing import Callable

import structlog

from commerce.application.dto import StockLineDTO, stock_to_dto
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import EntityNotFoundError
from commerce.domain.model.stock import DEFAULT_LOW_STOCK_THRESHOLD, StockEntry
from commerce.domain.repository.stock_repository import StockRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)


class _StockAdjustmentHandler:

    def __init__(
        self,
        stock_repo: StockRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._stock_repo = stock_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts

    def _load(self, location_id: str, variant_id: str) -> StockEntry:
        entry = self._stock_repo.get(location_id, variant_id)
        if entry is None:
            raise EntityNotFoundError(
                f"No stock entry for variant {variant_id} at location {location_id}"
            )
        return entry

    def _adjust(
        self,
        location_id: str,
        variant_id: str,
        action: str,
        load: Callable[[], StockEntry],
        mutate: Callable[[StockEntry], list[DomainEvent]],
    ) -> StockLineDTO:
        def attempt() -> tuple[StockEntry, list[DomainEvent]]:
            entry = load()
            events = mutate(entry)
            self._stock_repo.save(entry)
            return entry, events

        entry, events = retry_on_conflict(
            attempt,
            attempts=self._max_attempts,
            description=f"{action}:{location_id}/{variant_id}",
        )
        self._publisher.publish(events)
        logger.info(
            action,
            location_id=entry.location_id,
            variant_id=entry.variant_id,
            on_hand=entry.quantity_on_hand,
            reserved=entry.quantity_reserved,
        )
        return stock_to_dto(entry)


class ReceiveStockHandler(_StockAdjustmentHandler):
    """Add units to a stock entry, opening the entry on first receipt."""

    def __init__(
        self,
        stock_repo: StockRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
        default_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> None:
        super().__init__(stock_repo, publisher, max_attempts)
        self._default_threshold = default_threshold

    def handle(self, location_id: str, variant_id: str, quantity: int) -> StockLineDTO:
        def load() -> StockEntry:
            entry = self._stock_repo.get(location_id, variant_id)
            if entry is None:
                entry = StockEntry.create(
                    location_id, variant_id, low_stock_threshold=self._default_threshold
                )
            return entry

        return self._adjust(
            location_id, variant_id, "stock_received", load, lambda e: e.add_stock(quantity)
        )


class RemoveStockHandler(_StockAdjustmentHandler):

    def handle(self, location_id: str, variant_id: str, quantity: int) -> StockLineDTO:
        return self._adjust(
            location_id,
            variant_id,
            "stock_removed",
            lambda: self._load(location_id, variant_id),
            lambda e: e.remove_stock(quantity),
        )


class SetLowStockThresholdHandler(_StockAdjustmentHandler):

    def handle(self, location_id: str, variant_id: str, threshold: int) -> StockLineDTO:
        return self._adjust(
            location_id,
            variant_id,
            "low_stock_threshold_set",
            lambda: self._load(location_id, variant_id),
            lambda e: e.update_low_stock_threshold(threshold),
        )
