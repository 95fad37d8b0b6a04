"""RefundTransaction aggregate.

Created by ``Payment.initiate_refund`` and persisted on its own.  It only
references the reversed payment transaction by id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from commerce.domain.events import DomainEvent, RefundCompleted, RefundFailed
from commerce.domain.exceptions import InvalidAmount, InvalidStatusTransition
from commerce.domain.model.value_objects import Money, generate_id


class RefundStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (RefundStatus.COMPLETED, RefundStatus.FAILED)


@dataclass
class RefundTransaction:

    id: str
    payment_id: str
    payment_transaction_id: str
    refund_amount: Money
    status: RefundStatus = RefundStatus.PENDING
    gateway_refund_id: str | None = None
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    persisted_version: int | None = field(default=None, compare=False, repr=False)

    @staticmethod
    def create(
        payment_id: str, payment_transaction_id: str, refund_amount: Money
    ) -> RefundTransaction:
        if refund_amount.is_zero:
            raise InvalidAmount("Refund amount must be positive")
        return RefundTransaction(
            id=generate_id(),
            payment_id=payment_id,
            payment_transaction_id=payment_transaction_id,
            refund_amount=refund_amount,
        )

    def start_processing(self) -> list[DomainEvent]:
        if self.status is not RefundStatus.PENDING:
            raise InvalidStatusTransition(
                f"Can only start processing from PENDING status "
                f"(refund {self.id} is {self.status.value})"
            )
        self.status = RefundStatus.PROCESSING
        self.version += 1
        return []

    def complete(self, gateway_refund_id: str) -> list[DomainEvent]:
        if self.status is not RefundStatus.PROCESSING:
            raise InvalidStatusTransition(
                f"Can only complete from PROCESSING status "
                f"(refund {self.id} is {self.status.value})"
            )
        self.status = RefundStatus.COMPLETED
        self.gateway_refund_id = gateway_refund_id
        self.version += 1
        return [RefundCompleted(self.id, gateway_refund_id)]

    def fail(self) -> list[DomainEvent]:
        if self.status is not RefundStatus.PROCESSING:
            raise InvalidStatusTransition(
                f"Can only fail from PROCESSING status "
                f"(refund {self.id} is {self.status.value})"
            )
        self.status = RefundStatus.FAILED
        self.version += 1
        return [RefundFailed(self.id)]

    @property
    def is_completed(self) -> bool:
        return self.status is RefundStatus.COMPLETED
