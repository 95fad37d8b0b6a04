"""Application service: Process Payment use case.

Drives a payment through the gateway callbacks:

    start     PENDING -> PROCESSING
    complete  PROCESSING -> COMPLETED
    fail      PENDING | PROCESSING -> FAILED
    cancel    PENDING -> CANCELLED
"""

from __future__ import annotations

from typing import Callable

import structlog

from commerce.application.dto import PaymentDTO, payment_to_dto
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import EntityNotFoundError, ValidationError
from commerce.domain.model.payment import Payment
from commerce.domain.repository.payment_repository import PaymentRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)

SUCCESS_RESPONSE_CODE = "00"


def load_payment(payment_repo: PaymentRepository, payment_id: str) -> Payment:
    payment = payment_repo.get_by_id(payment_id)
    if payment is None:
        raise EntityNotFoundError(f"Payment {payment_id} not found")
    return payment


class ProcessPaymentHandler:

    def __init__(
        self,
        payment_repo: PaymentRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._payment_repo = payment_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts

    def start(self, payment_id: str) -> PaymentDTO:
        return self._update(payment_id, "started", lambda p: p.start_processing())

    def complete(
        self,
        payment_id: str,
        gateway_transaction_id: str,
        response_code: str = SUCCESS_RESPONSE_CODE,
    ) -> PaymentDTO:
        if not gateway_transaction_id or not gateway_transaction_id.strip():
            raise ValidationError("Gateway transaction ID is required")
        return self._update(
            payment_id,
            "completed",
            lambda p: p.complete(gateway_transaction_id.strip(), response_code),
        )

    def fail(
        self, payment_id: str, response_code: str, raw_response: str | None = None
    ) -> PaymentDTO:
        return self._update(
            payment_id, "failed", lambda p: p.fail(response_code, raw_response)
        )

    def cancel(self, payment_id: str) -> PaymentDTO:
        return self._update(payment_id, "cancelled", lambda p: p.cancel())

    def _update(
        self,
        payment_id: str,
        action: str,
        mutate: Callable[[Payment], list[DomainEvent]],
    ) -> PaymentDTO:
        def attempt() -> tuple[Payment, list[DomainEvent]]:
            payment = load_payment(self._payment_repo, payment_id)
            events = mutate(payment)
            self._payment_repo.save(payment)
            return payment, events

        payment, events = retry_on_conflict(
            attempt, attempts=self._max_attempts, description=f"payment_{action}:{payment_id}"
        )
        self._publisher.publish(events)
        logger.info(f"payment_{action}", payment_id=payment.id, status=payment.status.value)
        return payment_to_dto(payment)
