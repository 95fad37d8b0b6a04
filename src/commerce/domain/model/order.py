"""Order aggregate: the purchase lifecycle.

The Order is an aggregate root that owns its line items.  Items and
totals are a frozen snapshot taken at checkout: later catalog or stock
price changes never reach an existing order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from commerce.domain.events import (
    DomainEvent,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
)
from commerce.domain.exceptions import (
    InvalidAmount,
    InvalidStatusTransition,
    ValidationError,
)
from commerce.domain.model.value_objects import (
    Address,
    Money,
    OrderNumber,
    Quantity,
    generate_id,
)


class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


@dataclass(frozen=True)
class OrderItem:
    """Captures the price snapshot of a variant at checkout time."""

    sku: str
    variant_id: str
    product_name: str
    variant_name: str
    quantity: Quantity
    unit_price: Money  # locked at checkout
    image_url: str | None = None

    @property
    def total_price(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Order:
    """Aggregate root for purchase orders.

    Use the ``Order.create()`` factory for new orders; it enforces all
    business rules.  Repositories rebuild persisted orders through the
    plain constructor, without re-validating.
    """

    id: str
    order_number: OrderNumber
    user_id: str
    location_id: str
    items: tuple[OrderItem, ...]
    subtotal: Money
    shipping_total: Money
    tax_total: Money
    discount_total: Money
    grand_total: Money
    shipping_address: Address | None = None
    billing_address: Address | None = None
    coupon_code: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    cancel_reason: str | None = None
    completed_steps: tuple[str, ...] = ()
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    persisted_version: int | None = field(default=None, compare=False, repr=False)

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        user_id: str,
        location_id: str,
        items: list[OrderItem],
        subtotal: Money,
        shipping_total: Money | None = None,
        tax_total: Money | None = None,
        discount_total: Money | None = None,
        shipping_address: Address | None = None,
        billing_address: Address | None = None,
        coupon_code: str | None = None,
    ) -> tuple[Order, list[DomainEvent]]:
        """Create a new PENDING order, enforcing all invariants.

        The totals are supplied by the caller; ``grand_total`` is derived
        from them exactly once, here.
        """
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")
        if not location_id or not location_id.strip():
            raise ValidationError("Location ID is required")
        if not items:
            raise ValidationError("Order must contain at least one item")

        zero = Money.zero(subtotal.currency)
        shipping_total = shipping_total if shipping_total is not None else zero
        tax_total = tax_total if tax_total is not None else zero
        discount_total = discount_total if discount_total is not None else zero

        gross = subtotal + shipping_total + tax_total
        if discount_total > gross:
            raise InvalidAmount(
                f"Discount {discount_total} exceeds order value {gross}"
            )

        order = Order(
            id=generate_id(),
            order_number=OrderNumber.generate(),
            user_id=user_id.strip(),
            location_id=location_id.strip(),
            items=tuple(items),
            subtotal=subtotal,
            shipping_total=shipping_total,
            tax_total=tax_total,
            discount_total=discount_total,
            grand_total=gross - discount_total,
            shipping_address=shipping_address,
            billing_address=billing_address,
            coupon_code=coupon_code.upper() if coupon_code else None,
        )
        events: list[DomainEvent] = [
            OrderCreated(order.id, order.order_number.value, order.user_id)
        ]
        return order, events

    # --- State transitions ----------------------------------------------------

    def confirm(self) -> list[DomainEvent]:
        """PENDING -> CONFIRMED."""
        return self._transition_to(OrderStatus.CONFIRMED)

    def process(self) -> list[DomainEvent]:
        """CONFIRMED -> PROCESSING."""
        return self._transition_to(OrderStatus.PROCESSING)

    def ship(self) -> list[DomainEvent]:
        """PROCESSING -> SHIPPED.

        Converting stock reservations into sales must happen separately
        (coordinated by the application handler).
        """
        return self._transition_to(OrderStatus.SHIPPED)

    def deliver(self) -> list[DomainEvent]:
        """SHIPPED -> DELIVERED."""
        return self._transition_to(OrderStatus.DELIVERED)

    def refund(self) -> list[DomainEvent]:
        """DELIVERED -> REFUNDED."""
        return self._transition_to(OrderStatus.REFUNDED)

    def cancel(self, reason: str) -> list[DomainEvent]:
        """PENDING|CONFIRMED|PROCESSING -> CANCELLED.

        Does not touch stock, coupons or payments: releasing reservations
        and refunding are separate, explicit operations of the caller.
        """
        events = self._transition_to(OrderStatus.CANCELLED)
        self.cancel_reason = reason
        events.append(OrderCancelled(self.id, reason))
        return events

    # --- Computed properties --------------------------------------------------

    @property
    def items_total(self) -> Money:
        result = Money.zero(self.subtotal.currency)
        for item in self.items:
            result = result + item.total_price
        return result

    @property
    def is_cancellable(self) -> bool:
        return self.status.can_transition_to(OrderStatus.CANCELLED)

    # --- Follow-up steps ------------------------------------------------------

    def record_step(self, step: str) -> None:
        """Note that one follow-up of a transition has been committed.

        Cancelling and shipping touch other aggregates after the order is
        saved (a stock release or a sale per variant, a coupon revert).
        Each one is recorded here once it commits, so an interrupted run
        can be resumed without repeating finished steps.
        """
        if step in self.completed_steps:
            return
        self.completed_steps = self.completed_steps + (step,)
        self.version += 1

    def has_completed(self, step: str) -> bool:
        return step in self.completed_steps

    # --- Internal helpers -----------------------------------------------------

    def _transition_to(self, target: OrderStatus) -> list[DomainEvent]:
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Cannot move order {self.order_number} from "
                f"{self.status.value} to {target.value}"
            )
        previous = self.status
        self.status = target
        self.version += 1
        return [OrderStatusChanged(self.id, previous.value, target.value)]
