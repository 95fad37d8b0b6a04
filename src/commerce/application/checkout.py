"""Application service: Checkout use case.

Composes the four aggregates for one purchase:

1. Snapshot the cart lines into OrderItems and price the order.
2. Validate the coupon and compute the discount.
3. Reserve stock for every line (all-or-nothing).
4. Persist the PENDING order.
5. Record the coupon usage.
6. Create the payment for the grand total.

Aggregates commit independently, so every step after the stock
reservation compensates the earlier ones if it fails.
"""

from __future__ import annotations

import structlog

from commerce.application.apply_coupon import revert_coupon_usage
from commerce.application.dto import (
    CheckoutItemSpec,
    CheckoutRequest,
    CheckoutResultDTO,
    order_to_dto,
    payment_to_dto,
)
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.application.order_lifecycle import (
    COUPON_REVERT_STEP,
    record_order_step,
    release_step,
)
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    ValidationError,
)
from commerce.domain.model.order import Order, OrderItem
from commerce.domain.model.payment import Payment, PaymentMethod
from commerce.domain.model.value_objects import Money, Quantity
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.repository.payment_repository import PaymentRepository
from commerce.domain.repository.stock_repository import StockRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict
from commerce.domain.service.stock_reservation_service import (
    StockReservationService,
    quantities_by_variant,
)

logger = structlog.get_logger(__name__)


def parse_payment_method(value: str) -> PaymentMethod:
    try:
        return PaymentMethod(value.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(
            f"Unknown payment method '{value}'. Expected one of: {allowed}"
        ) from None


class CheckoutHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        stock_repo: StockRepository,
        coupon_repo: CouponRepository,
        payment_repo: PaymentRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._order_repo = order_repo
        self._coupon_repo = coupon_repo
        self._payment_repo = payment_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts
        self._reservations = StockReservationService(stock_repo, max_attempts)

    def handle(self, request: CheckoutRequest) -> CheckoutResultDTO:
        method = parse_payment_method(request.payment_method)
        items = [self._to_item(spec) for spec in request.items]
        if not items:
            raise ValidationError("Order must contain at least one item")

        subtotal = Money.zero()
        for item in items:
            subtotal = subtotal + item.total_price

        discount = Money.zero()
        coupon_code = None
        if request.coupon_code:
            coupon = self._coupon_repo.get_by_code(request.coupon_code)
            if coupon is None:
                raise EntityNotFoundError(f"Coupon not found: '{request.coupon_code}'")
            discount = coupon.calculate_discount(subtotal)
            coupon_code = coupon.code

        # Build the order in memory first so every validation runs
        # before stock is touched.
        order, events = Order.create(
            user_id=request.user_id,
            location_id=request.location_id,
            items=items,
            subtotal=subtotal,
            shipping_total=Money.of(request.shipping_total),
            tax_total=Money.of(request.tax_total),
            discount_total=discount,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address,
            coupon_code=coupon_code,
        )

        events += self._reservations.reserve_for_order(order)

        try:
            self._order_repo.save(order)
        except DomainException:
            self._reservations.release_for_order(order)
            raise

        coupon_used = False
        if coupon_code is not None:
            try:
                events += self._record_coupon_usage(coupon_code, subtotal)
            except DomainException as exc:
                self._abandon(order, f"Coupon {coupon_code} could not be applied: {exc}")
                raise
            coupon_used = True

        payment = None
        if not order.grand_total.is_zero:
            payment = Payment.create(order.id, order.grand_total, method)
            try:
                self._payment_repo.save(payment)
            except DomainException as exc:
                self._abandon(order, f"Payment could not be opened: {exc}", coupon_used)
                raise

        self._publisher.publish(events)
        logger.info(
            "checkout_completed",
            order_id=order.id,
            order_number=order.order_number.value,
            grand_total=str(order.grand_total.amount),
            discount=str(discount.amount),
            payment_id=payment.id if payment else None,
        )
        return CheckoutResultDTO(
            order=order_to_dto(order),
            payment=payment_to_dto(payment) if payment else None,
            discount=str(discount),
        )

    # --- Steps ----------------------------------------------------------------

    @staticmethod
    def _to_item(spec: CheckoutItemSpec) -> OrderItem:
        if not spec.variant_id or not spec.variant_id.strip():
            raise ValidationError("Every item needs a variant ID")
        variant_id = spec.variant_id.strip()
        return OrderItem(
            sku=spec.sku or variant_id,
            variant_id=variant_id,
            product_name=spec.product_name or variant_id,
            variant_name=spec.variant_name,
            quantity=Quantity(spec.quantity),
            unit_price=Money.of(spec.unit_price),  # <-- price snapshot
        )

    def _record_coupon_usage(self, code: str, order_value: Money) -> list[DomainEvent]:
        def attempt() -> list[DomainEvent]:
            coupon = self._coupon_repo.get_by_code(code)
            if coupon is None:
                raise EntityNotFoundError(f"Coupon not found: '{code}'")
            # Re-validate against fresh state: a concurrent checkout may
            # have used the last redemption.
            coupon.validate(order_value)
            events = coupon.record_usage()
            self._coupon_repo.save(coupon)
            return events

        return retry_on_conflict(
            attempt, attempts=self._max_attempts, description=f"record_usage:{code}"
        )

    def _abandon(self, order: Order, reason: str, coupon_used: bool = False) -> None:
        """Compensate a half-finished checkout.

        The order is cancelled, its stock released and, if the redemption
        was already counted, the coupon given back.  Each step is recorded
        on the order like a regular cancellation.
        """
        logger.warning("checkout_compensating", order_id=order.id, reason=reason)
        order.cancel(reason)
        if order.coupon_code and not coupon_used:
            order.record_step(COUPON_REVERT_STEP)
        self._order_repo.save(order)

        for variant_id, qty in quantities_by_variant(order.items).items():
            self._reservations.release(order.location_id, {variant_id: qty})
            record_order_step(
                self._order_repo, order.id, release_step(variant_id), self._max_attempts
            )
        if coupon_used:
            revert_coupon_usage(self._coupon_repo, order.coupon_code, self._max_attempts)
            record_order_step(
                self._order_repo, order.id, COUPON_REVERT_STEP, self._max_attempts
            )
