"""Domain events.

Events are immutable facts named in the past tense.  Aggregates never
dispatch them: every mutating method returns the events it raised and the
caller publishes them once the aggregate has been saved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent:
    """Base class for all domain events."""

    @property
    def name(self) -> str:
        return type(self).__name__


# --- Stock ledger ------------------------------------------------------------


@dataclass(frozen=True)
class StockReserved(DomainEvent):
    stock_id: str
    location_id: str
    variant_id: str
    quantity: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ReservationReleased(DomainEvent):
    stock_id: str
    location_id: str
    variant_id: str
    quantity: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class StockAdded(DomainEvent):
    stock_id: str
    location_id: str
    variant_id: str
    quantity: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class StockRemoved(DomainEvent):
    stock_id: str
    location_id: str
    variant_id: str
    quantity: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class SaleConfirmed(DomainEvent):
    stock_id: str
    location_id: str
    variant_id: str
    quantity: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class LowStockReached(DomainEvent):
    """Available stock dropped to or below the entry's threshold."""

    stock_id: str
    location_id: str
    variant_id: str
    available: int
    threshold: int
    occurred_at: datetime = field(default_factory=_now)


# --- Orders ------------------------------------------------------------------


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    order_id: str
    order_number: str
    user_id: str
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    order_id: str
    from_status: str
    to_status: str
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    order_id: str
    reason: str
    occurred_at: datetime = field(default_factory=_now)


# --- Payments ----------------------------------------------------------------


@dataclass(frozen=True)
class PaymentCompleted(DomainEvent):
    payment_id: str
    order_id: str
    amount: Decimal
    gateway_transaction_id: str
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PaymentFailed(DomainEvent):
    payment_id: str
    order_id: str
    response_code: str
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PaymentCancelled(DomainEvent):
    payment_id: str
    order_id: str
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class RefundInitiated(DomainEvent):
    refund_id: str
    payment_id: str
    amount: Decimal
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class RefundCompleted(DomainEvent):
    refund_id: str
    gateway_refund_id: str
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class RefundFailed(DomainEvent):
    refund_id: str
    occurred_at: datetime = field(default_factory=_now)


# --- Coupons -----------------------------------------------------------------


@dataclass(frozen=True)
class CouponUsageRecorded(DomainEvent):
    code: str
    usage_count: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class CouponUsageReverted(DomainEvent):
    code: str
    usage_count: int
    occurred_at: datetime = field(default_factory=_now)
