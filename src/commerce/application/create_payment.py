"""Application service: Create Payment use case.

Opens a new payment attempt for an order, typically after an earlier
attempt failed or was cancelled.
"""

from __future__ import annotations

import structlog

from commerce.application.checkout import parse_payment_method
from commerce.application.dto import PaymentDTO, payment_to_dto
from commerce.application.order_lifecycle import load_order
from commerce.domain.exceptions import InvalidStatusTransition, ValidationError
from commerce.domain.model.payment import Payment, PaymentStatus
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.repository.payment_repository import PaymentRepository

logger = structlog.get_logger(__name__)

# An order may carry at most one payment in these states.
_OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.COMPLETED)


class CreatePaymentHandler:

    def __init__(self, order_repo: OrderRepository, payment_repo: PaymentRepository) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo

    def handle(self, order_id: str, method: str) -> PaymentDTO:
        payment_method = parse_payment_method(method)
        order = load_order(self._order_repo, order_id)
        if order.status.is_terminal:
            raise InvalidStatusTransition(
                f"Cannot take payment for a {order.status.value} order"
            )
        if order.grand_total.is_zero:
            raise ValidationError(f"Order {order.id} has nothing to pay")

        for existing in self._payment_repo.list_by_order(order.id):
            if existing.status in _OPEN_STATUSES:
                raise ValidationError(
                    f"Order {order.id} already has a {existing.status.value} "
                    f"payment ({existing.id})"
                )

        payment = Payment.create(order.id, order.grand_total, payment_method)
        self._payment_repo.save(payment)
        logger.info(
            "payment_created",
            payment_id=payment.id,
            order_id=order.id,
            method=payment_method.value,
            amount=str(payment.amount.amount),
        )
        return payment_to_dto(payment)
