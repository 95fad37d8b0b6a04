"""Application service: Cancel Order use case.

``Order.cancel`` only changes the order.  This handler supplies the
compensations around it, each committed on its own aggregate:

- release the order's stock reservations
- give the coupon redemption back
- refund a COMPLETED payment in full, or cancel a PENDING one

A payment still PROCESSING at the gateway is left alone; its eventual
callback decides what happens next.

The CANCELLED status is committed first so no ship can race the
compensations.  Each release and the coupon revert are then recorded on
the order as they commit.  If a compensation fails, cancelling the same
order again picks up the outstanding ones instead of being rejected.
"""

from __future__ import annotations

import structlog

from commerce.application.apply_coupon import revert_coupon_usage
from commerce.application.dto import OrderDTO, order_to_dto
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.application.order_lifecycle import (
    COUPON_REVERT_STEP,
    load_order,
    record_order_step,
    release_step,
)
from commerce.application.refund_payment import open_refund, refund_record_missing
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import DomainException, ValidationError
from commerce.domain.model.order import Order, OrderStatus
from commerce.domain.model.payment import PaymentStatus
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from commerce.domain.repository.stock_repository import StockRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict
from commerce.domain.service.stock_reservation_service import (
    StockReservationService,
    quantities_by_variant,
)

logger = structlog.get_logger(__name__)

# PROCESSING is settled by the gateway callback, not by a cancel.
_UNSETTLED_PAYMENT_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.COMPLETED})


class CancelOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        stock_repo: StockRepository,
        coupon_repo: CouponRepository,
        payment_repo: PaymentRepository,
        refund_repo: RefundRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._order_repo = order_repo
        self._coupon_repo = coupon_repo
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts
        self._reservations = StockReservationService(stock_repo, max_attempts)

    def handle(self, order_id: str, reason: str) -> OrderDTO:
        if not reason or not reason.strip():
            raise ValidationError("A cancellation reason is required")

        order, events = retry_on_conflict(
            lambda: self._cancel(order_id, reason.strip()),
            attempts=self._max_attempts,
            description=f"cancel:{order_id}",
        )

        try:
            order = self._compensate(order, events)
        except DomainException:
            logger.error(
                "cancel_compensation_incomplete",
                order_id=order.id,
                completed_steps=list(order.completed_steps),
            )
            raise
        finally:
            self._publisher.publish(events)

        logger.info("order_cancelled", order_id=order.id, reason=order.cancel_reason)
        return order_to_dto(order)

    # --- Steps ----------------------------------------------------------------

    def _cancel(self, order_id: str, reason: str) -> tuple[Order, list[DomainEvent]]:
        order = load_order(self._order_repo, order_id)
        if order.status is OrderStatus.CANCELLED and self._has_outstanding(order):
            logger.info(
                "order_cancel_resumed",
                order_id=order.id,
                completed_steps=list(order.completed_steps),
            )
            return order, []
        events = order.cancel(reason)
        self._order_repo.save(order)
        return order, events

    def _compensate(self, order: Order, events: list[DomainEvent]) -> Order:
        """Run every outstanding compensation, appending to ``events``."""
        for variant_id, qty in quantities_by_variant(order.items).items():
            step = release_step(variant_id)
            if order.has_completed(step):
                continue
            events += self._reservations.release(order.location_id, {variant_id: qty})
            order = record_order_step(self._order_repo, order.id, step, self._max_attempts)

        if order.coupon_code and not order.has_completed(COUPON_REVERT_STEP):
            events += revert_coupon_usage(
                self._coupon_repo, order.coupon_code, self._max_attempts
            )
            order = record_order_step(
                self._order_repo, order.id, COUPON_REVERT_STEP, self._max_attempts
            )

        events += self._settle_payment(order)
        return order

    def _settle_payment(self, order: Order) -> list[DomainEvent]:
        def attempt() -> list[DomainEvent]:
            payment = self._payment_repo.get_by_order_id(order.id)
            if payment is None:
                return []
            if payment.status is PaymentStatus.COMPLETED or refund_record_missing(
                payment, self._refund_repo
            ):
                refund, events = open_refund(self._payment_repo, self._refund_repo, payment.id)
                logger.info(
                    "refund_initiated",
                    payment_id=payment.id,
                    refund_id=refund.id,
                    amount=str(refund.refund_amount.amount),
                )
                return events
            if payment.status is PaymentStatus.PENDING:
                events = payment.cancel()
                self._payment_repo.save(payment)
                return events
            if payment.status is PaymentStatus.PROCESSING:
                logger.warning(
                    "payment_in_flight_on_cancel",
                    order_id=order.id,
                    payment_id=payment.id,
                )
            return []

        return retry_on_conflict(
            attempt, attempts=self._max_attempts, description=f"settle_payment:{order.id}"
        )

    # --- Internal helpers -----------------------------------------------------

    def _has_outstanding(self, order: Order) -> bool:
        for variant_id in quantities_by_variant(order.items):
            if not order.has_completed(release_step(variant_id)):
                return True
        if order.coupon_code and not order.has_completed(COUPON_REVERT_STEP):
            return True
        payment = self._payment_repo.get_by_order_id(order.id)
        if payment is None:
            return False
        return payment.status in _UNSETTLED_PAYMENT_STATUSES or refund_record_missing(
            payment, self._refund_repo
        )
