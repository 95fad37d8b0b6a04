"""Application services: refunds.

``RefundPaymentHandler`` works on a single payment and its refund
transactions.  ``RefundOrderHandler`` is the return flow for a delivered
order: the order moves to REFUNDED and its payment is refunded in full.
"""

from __future__ import annotations

from typing import Callable

import structlog

from commerce.application.dto import OrderDTO, RefundDTO, order_to_dto, refund_to_dto
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.application.order_lifecycle import load_order
from commerce.application.process_payment import load_payment
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    InvalidStatusTransition,
    ValidationError,
)
from commerce.domain.model.order import Order, OrderStatus
from commerce.domain.model.payment import Payment, PaymentStatus
from commerce.domain.model.refund import RefundStatus, RefundTransaction
from commerce.domain.model.value_objects import Money
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)


def refund_record_missing(payment: Payment, refund_repo: RefundRepository) -> bool:
    """True when the payment moved to REFUNDED but its refund was never stored."""
    return (
        payment.status is PaymentStatus.REFUNDED
        and payment.refund_id is not None
        and refund_repo.get_by_id(payment.refund_id) is None
    )


def open_refund(
    payment_repo: PaymentRepository,
    refund_repo: RefundRepository,
    payment_id: str,
    amount: str | None = None,
) -> tuple[RefundTransaction, list[DomainEvent]]:
    """Move a COMPLETED payment to REFUNDED and store its PENDING refund.

    The payment is saved first: its compare-and-swap save is what makes
    the refund unique.  If an earlier call stopped between the two saves,
    this call stores the missing refund record instead.  ``amount``
    defaults to the full payment amount.
    """
    payment = load_payment(payment_repo, payment_id)
    if refund_record_missing(payment, refund_repo):
        refund, events = payment.restore_refund()
        refund_repo.save(refund)
        logger.warning("refund_record_restored", payment_id=payment.id, refund_id=refund.id)
        return refund, events

    refund_amount = (
        payment.amount if amount is None else Money.of(amount, payment.amount.currency)
    )
    refund, events = payment.initiate_refund(refund_amount)
    payment_repo.save(payment)
    refund_repo.save(refund)
    return refund, events


class RefundPaymentHandler:

    def __init__(
        self,
        payment_repo: PaymentRepository,
        refund_repo: RefundRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts

    def initiate(self, payment_id: str, amount: str | None = None) -> RefundDTO:
        """Open a refund against a COMPLETED payment.

        ``amount`` defaults to the full payment amount.  Calling it again
        after a run that stored the payment but not the refund finishes
        that refund.
        """
        refund, events = retry_on_conflict(
            lambda: open_refund(self._payment_repo, self._refund_repo, payment_id, amount),
            attempts=self._max_attempts,
            description=f"refund:{payment_id}",
        )
        self._publisher.publish(events)
        logger.info(
            "refund_initiated",
            payment_id=payment_id,
            refund_id=refund.id,
            amount=str(refund.refund_amount.amount),
        )
        return refund_to_dto(refund)

    def complete(self, refund_id: str, gateway_refund_id: str) -> RefundDTO:
        """Record the gateway's confirmation.  A PENDING refund is started first."""
        if not gateway_refund_id or not gateway_refund_id.strip():
            raise ValidationError("Gateway refund ID is required")

        def mutate(refund: RefundTransaction) -> list[DomainEvent]:
            events = self._start_if_pending(refund)
            return events + refund.complete(gateway_refund_id.strip())

        return self._update(refund_id, "completed", mutate)

    def fail(self, refund_id: str) -> RefundDTO:
        def mutate(refund: RefundTransaction) -> list[DomainEvent]:
            events = self._start_if_pending(refund)
            return events + refund.fail()

        return self._update(refund_id, "failed", mutate)

    def list_for_payment(self, payment_id: str) -> list[RefundDTO]:
        load_payment(self._payment_repo, payment_id)
        return [refund_to_dto(r) for r in self._refund_repo.list_by_payment(payment_id)]

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _start_if_pending(refund: RefundTransaction) -> list[DomainEvent]:
        if refund.status is RefundStatus.PENDING:
            return refund.start_processing()
        return []

    def _update(
        self,
        refund_id: str,
        action: str,
        mutate: Callable[[RefundTransaction], list[DomainEvent]],
    ) -> RefundDTO:
        def attempt() -> tuple[RefundTransaction, list[DomainEvent]]:
            refund = self._refund_repo.get_by_id(refund_id)
            if refund is None:
                raise EntityNotFoundError(f"Refund {refund_id} not found")
            events = mutate(refund)
            self._refund_repo.save(refund)
            return refund, events

        refund, events = retry_on_conflict(
            attempt, attempts=self._max_attempts, description=f"refund_{action}:{refund_id}"
        )
        self._publisher.publish(events)
        logger.info(f"refund_{action}", refund_id=refund.id, status=refund.status.value)
        return refund_to_dto(refund)


class RefundOrderHandler:
    """DELIVERED -> REFUNDED, then a full refund of the order's payment.

    The order is committed first.  If the payment refund then fails, the
    order is left REFUNDED with its payment still COMPLETED, and calling
    ``handle`` again refunds the payment.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        refund_repo: RefundRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts

    def handle(self, order_id: str) -> tuple[OrderDTO, RefundDTO | None]:
        order = load_order(self._order_repo, order_id)
        payment = self._payment_repo.get_by_order_id(order.id)

        if order.status is OrderStatus.REFUNDED and self._payment_outstanding(payment):
            logger.info("order_refund_resumed", order_id=order.id)
            events: list[DomainEvent] = []
        else:
            # Check the payment up front so a half-paid order is never
            # marked REFUNDED.
            if (
                order.status is OrderStatus.DELIVERED
                and payment is not None
                and payment.status is not PaymentStatus.COMPLETED
            ):
                raise InvalidStatusTransition(
                    f"Order {order.id} payment is {payment.status.value}, "
                    f"only COMPLETED payments can be refunded"
                )
            order, events = retry_on_conflict(
                lambda: self._refund_order(order_id),
                attempts=self._max_attempts,
                description=f"refund_order:{order_id}",
            )

        refund = None
        try:
            if payment is not None:
                refund, refund_events = retry_on_conflict(
                    lambda: open_refund(self._payment_repo, self._refund_repo, payment.id),
                    attempts=self._max_attempts,
                    description=f"refund:{payment.id}",
                )
                events += refund_events
        except DomainException:
            logger.error("order_refund_incomplete", order_id=order.id, payment_id=payment.id)
            raise
        finally:
            self._publisher.publish(events)

        logger.info(
            "order_refunded",
            order_id=order.id,
            refund_id=refund.id if refund else None,
        )
        return order_to_dto(order), refund_to_dto(refund) if refund else None

    def _refund_order(self, order_id: str) -> tuple[Order, list[DomainEvent]]:
        order = load_order(self._order_repo, order_id)
        events = order.refund()
        self._order_repo.save(order)
        return order, events

    def _payment_outstanding(self, payment: Payment | None) -> bool:
        if payment is None:
            return False
        return payment.status is PaymentStatus.COMPLETED or refund_record_missing(
            payment, self._refund_repo
        )
