"""StockEntry aggregate: the stock ledger for one (location, variant) pair.

Each entry knows how many units are physically on hand and how many of
them are held by reservations that have not yet become sales.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from commerce.domain.events import (
    DomainEvent,
    LowStockReached,
    ReservationReleased,
    SaleConfirmed,
    StockAdded,
    StockRemoved,
    StockReserved,
)
from commerce.domain.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    InvalidReservation,
    ValidationError,
)
from commerce.domain.model.value_objects import generate_id

DEFAULT_LOW_STOCK_THRESHOLD = 10


def normalize_stock_key(location_id: str, variant_id: str) -> tuple[str, str]:
    return location_id.strip(), variant_id.strip()


@dataclass
class StockEntry:
    """Aggregate root for the stock ledger.

    Invariants:
    - ``0 <= quantity_reserved <= quantity_on_hand``
    - every successful mutation increments ``version``

    Use ``StockEntry.create()`` for new entries.  ``persisted_version`` is
    owned by the repositories: it holds the version that was read at load
    time (``None`` until the entry is first saved).
    """

    id: str
    location_id: str
    variant_id: str
    quantity_on_hand: int
    quantity_reserved: int = 0
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    version: int = 0
    persisted_version: int | None = field(default=None, compare=False, repr=False)

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def create(
        location_id: str,
        variant_id: str,
        quantity_on_hand: int = 0,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> StockEntry:
        if not location_id or not location_id.strip():
            raise ValidationError("Location ID is required")
        if not variant_id or not variant_id.strip():
            raise ValidationError("Variant ID is required")
        if quantity_on_hand < 0:
            raise InvalidQuantity("Initial quantity on hand cannot be negative")
        if low_stock_threshold < 0:
            raise InvalidQuantity("Threshold cannot be negative")
        return StockEntry(
            id=generate_id(),
            location_id=location_id.strip(),
            variant_id=variant_id.strip(),
            quantity_on_hand=quantity_on_hand,
            low_stock_threshold=low_stock_threshold,
        )

    # --- Computed properties --------------------------------------------------

    @property
    def available_quantity(self) -> int:
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def is_low_stock(self) -> bool:
        return self.available_quantity <= self.low_stock_threshold

    @property
    def is_out_of_stock(self) -> bool:
        return self.available_quantity <= 0

    # --- Ledger operations ----------------------------------------------------

    def reserve(self, quantity: int) -> list[DomainEvent]:
        """Hold ``quantity`` units for a pending order."""
        self._validate_positive(quantity)
        if self.available_quantity < quantity:
            raise InsufficientStock(
                f"Not enough stock available for {self.variant_id} at "
                f"{self.location_id}. Available: {self.available_quantity}, "
                f"Requested: {quantity}"
            )
        was_low = self.is_low_stock
        self.quantity_reserved += quantity
        self.version += 1
        events: list[DomainEvent] = [StockReserved(*self._key(), quantity)]
        return events + self._low_stock_events(was_low)

    def release_reservation(self, quantity: int) -> list[DomainEvent]:
        """Give back reserved units.

        Over-release clamps at zero instead of failing, so compensating
        actions never error out.  Callers are expected to track how much
        they reserved.
        """
        self._validate_positive(quantity)
        released = min(quantity, self.quantity_reserved)
        self.quantity_reserved -= released
        self.version += 1
        return [ReservationReleased(*self._key(), released)]

    def add_stock(self, quantity: int) -> list[DomainEvent]:
        """Receive inventory."""
        self._validate_positive(quantity)
        self.quantity_on_hand += quantity
        self.version += 1
        return [StockAdded(*self._key(), quantity)]

    def remove_stock(self, quantity: int) -> list[DomainEvent]:
        """Write off units that are on hand (damage, shrinkage, transfer out)."""
        self._validate_positive(quantity)
        if self.quantity_on_hand < quantity:
            raise InsufficientStock(
                f"Cannot remove {quantity} units. Only {self.quantity_on_hand} on hand"
            )
        if self.quantity_on_hand - quantity < self.quantity_reserved:
            raise InsufficientStock(
                f"Cannot remove {quantity} units. {self.quantity_reserved} "
                f"of {self.quantity_on_hand} on hand are reserved"
            )
        was_low = self.is_low_stock
        self.quantity_on_hand -= quantity
        self.version += 1
        events: list[DomainEvent] = [StockRemoved(*self._key(), quantity)]
        return events + self._low_stock_events(was_low)

    def confirm_sale(self, quantity: int) -> list[DomainEvent]:
        """Turn a reservation into a permanent deduction.

        Both ``quantity_reserved`` and ``quantity_on_hand`` decrease by the
        same amount, so ``available_quantity`` does not change.
        """
        self._validate_positive(quantity)
        if self.quantity_reserved < quantity:
            raise InvalidReservation(
                f"Not enough reserved. Reserved: {self.quantity_reserved}, "
                f"Requested: {quantity}"
            )
        self.quantity_reserved -= quantity
        self.quantity_on_hand -= quantity
        self.version += 1
        return [SaleConfirmed(*self._key(), quantity)]

    def update_low_stock_threshold(self, threshold: int) -> list[DomainEvent]:
        if threshold < 0:
            raise InvalidQuantity("Threshold cannot be negative")
        was_low = self.is_low_stock
        self.low_stock_threshold = threshold
        self.version += 1
        return self._low_stock_events(was_low)

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _validate_positive(quantity: int) -> None:
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise InvalidQuantity(
                f"Quantity must be an integer, got {type(quantity).__name__}"
            )
        if quantity <= 0:
            raise InvalidQuantity("Quantity must be positive")

    def _key(self) -> tuple[str, str, str]:
        return self.id, self.location_id, self.variant_id

    def _low_stock_events(self, was_low: bool) -> list[DomainEvent]:
        if was_low or not self.is_low_stock:
            return []
        return [
            LowStockReached(
                *self._key(),
                available=self.available_quantity,
                threshold=self.low_stock_threshold,
            )
        ]
