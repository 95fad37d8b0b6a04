"""Application service: Show Payment use case (query)."""

from __future__ import annotations

from commerce.application.dto import PaymentDTO, RefundDTO, payment_to_dto, refund_to_dto
from commerce.application.process_payment import load_payment
from commerce.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)


class ShowPaymentHandler:

    def __init__(self, payment_repo: PaymentRepository, refund_repo: RefundRepository) -> None:
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo

    def handle(self, payment_id: str) -> tuple[PaymentDTO, list[RefundDTO]]:
        payment = load_payment(self._payment_repo, payment_id)
        refunds = self._refund_repo.list_by_payment(payment.id)
        return payment_to_dto(payment), [refund_to_dto(r) for r in refunds]

    def list_for_order(self, order_id: str) -> list[PaymentDTO]:
        return [payment_to_dto(p) for p in self._payment_repo.list_by_order(order_id)]
