"""Domain service: Stock Reservation.

Coordinates the cross-entry operations of reserving, releasing and
selling stock for a set of variants at one location.  Each StockEntry is
its own aggregate and commits on its own, so this service validates
everything up front, then applies entry by entry with retry-on-conflict,
and compensates if a later entry fails.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    InsufficientStock,
    InvalidReservation,
)
from commerce.domain.model.order import Order, OrderItem
from commerce.domain.model.stock import StockEntry
from commerce.domain.repository.stock_repository import StockRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)


def quantities_by_variant(items: Iterable[OrderItem]) -> dict[str, int]:
    """Sum item quantities per variant (an order may list a variant twice)."""
    result: dict[str, int] = {}
    for item in items:
        result[item.variant_id] = result.get(item.variant_id, 0) + item.quantity.value
    return result


class StockReservationService:

    def __init__(
        self, stock_repo: StockRepository, max_attempts: int = DEFAULT_ATTEMPTS
    ) -> None:
        self._stock_repo = stock_repo
        self._max_attempts = max_attempts

    # --- Reserve --------------------------------------------------------------

    def reserve(self, location_id: str, quantities: dict[str, int]) -> list[DomainEvent]:
        """Reserve every quantity, or none of them.

        First every variant is loaded and checked for enough available
        stock, failing fast before any mutation.  Then entries are reserved
        one by one (retrying on conflict); if one fails, the reservations
        already made are released.
        """
        for variant_id, qty in quantities.items():
            entry = self._load(location_id, variant_id)
            if qty > entry.available_quantity:
                raise InsufficientStock(
                    f"Insufficient stock for {variant_id} at {location_id} "
                    f"(need {qty}, have {entry.available_quantity} available)"
                )

        events: list[DomainEvent] = []
        done: dict[str, int] = {}
        try:
            for variant_id, qty in quantities.items():
                events += self._apply(
                    location_id, variant_id, lambda e, q=qty: e.reserve(q), "reserve"
                )
                done[variant_id] = qty
        except DomainException:
            if done:
                logger.warning(
                    "reservation_rolled_back", location_id=location_id, variants=list(done)
                )
                self.release(location_id, done)
            raise
        return events

    def reserve_for_order(self, order: Order) -> list[DomainEvent]:
        return self.reserve(order.location_id, quantities_by_variant(order.items))

    # --- Release --------------------------------------------------------------

    def release(self, location_id: str, quantities: dict[str, int]) -> list[DomainEvent]:
        """Release reservations.  Over-release is clamped by the ledger."""
        events: list[DomainEvent] = []
        for variant_id, qty in quantities.items():
            events += self._apply(
                location_id,
                variant_id,
                lambda e, q=qty: e.release_reservation(q),
                "release_reservation",
            )
        return events

    def release_for_order(self, order: Order) -> list[DomainEvent]:
        return self.release(order.location_id, quantities_by_variant(order.items))

    # --- Sell -----------------------------------------------------------------

    def check_reserved(self, location_id: str, quantities: dict[str, int]) -> None:
        """Raise InvalidReservation unless every quantity is currently reserved."""
        for variant_id, qty in quantities.items():
            entry = self._load(location_id, variant_id)
            if qty > entry.quantity_reserved:
                raise InvalidReservation(
                    f"Cannot sell {qty} of {variant_id} at {location_id} "
                    f"(only {entry.quantity_reserved} currently reserved)"
                )

    def confirm_sale(self, location_id: str, quantities: dict[str, int]) -> list[DomainEvent]:
        """Turn reservations into permanent deductions (validate-then-apply)."""
        self.check_reserved(location_id, quantities)

        events: list[DomainEvent] = []
        for variant_id, qty in quantities.items():
            events += self._apply(
                location_id, variant_id, lambda e, q=qty: e.confirm_sale(q), "confirm_sale"
            )
        return events

    # --- Internal helpers -----------------------------------------------------

    def _load(self, location_id: str, variant_id: str) -> StockEntry:
        entry = self._stock_repo.get(location_id, variant_id)
        if entry is None:
            raise EntityNotFoundError(
                f"No stock entry for variant '{variant_id}' at location '{location_id}'"
            )
        return entry

    def _apply(self, location_id, variant_id, mutate, description) -> list[DomainEvent]:
        """Reload, mutate and save one entry, retrying on conflict."""

        def attempt() -> list[DomainEvent]:
            entry = self._load(location_id, variant_id)
            events = mutate(entry)
            self._stock_repo.save(entry)
            return events

        return retry_on_conflict(
            attempt,
            attempts=self._max_attempts,
            description=f"{description}:{location_id}/{variant_id}",
        )
