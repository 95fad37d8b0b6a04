"""Payment aggregate.

A Payment tracks a single payment attempt against an order amount.  It
owns an append-only history of gateway interactions and can spawn a
RefundTransaction once it has completed.

Status checks are plain guard clauses: the machine is small enough that
each transition reads best as its own method.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from commerce.domain.events import (
    DomainEvent,
    PaymentCancelled,
    PaymentCompleted,
    PaymentFailed,
    RefundInitiated,
)
from commerce.domain.exceptions import (
    InvalidAmount,
    InvalidStatusTransition,
    ValidationError,
)
from commerce.domain.model.refund import RefundTransaction
from commerce.domain.model.value_objects import Money, generate_id


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(Enum):
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"
    MOMO = "momo"
    VNPAY = "vnpay"
    ZALOPAY = "zalopay"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"

    @property
    def is_cash(self) -> bool:
        return self is PaymentMethod.COD

    @property
    def is_online(self) -> bool:
        return not self.is_cash


@dataclass(frozen=True)
class PaymentTransaction:
    """One gateway interaction.  Never mutated after it is appended."""

    id: str
    payment_id: str
    status: PaymentStatus
    gateway_transaction_id: str | None = None
    gateway_response_code: str | None = None
    raw_response: str | None = None
    performed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_successful(self) -> bool:
        return self.status is PaymentStatus.COMPLETED


@dataclass
class Payment:
    """Aggregate root for a payment attempt.

    Lifecycle::

        PENDING -> PROCESSING -> COMPLETED -> REFUNDED
           |            |
           +------------+--> FAILED
           |
           +--> CANCELLED
    """

    id: str
    order_id: str
    amount: Money
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    transactions: tuple[PaymentTransaction, ...] = ()
    refund_id: str | None = None
    refunded_amount: Money | None = None
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    persisted_version: int | None = field(default=None, compare=False, repr=False)

    @staticmethod
    def create(order_id: str, amount: Money, method: PaymentMethod) -> Payment:
        if not order_id or not order_id.strip():
            raise ValidationError("Order ID is required")
        if amount.is_zero:
            raise InvalidAmount("Payment amount must be positive")
        return Payment(id=generate_id(), order_id=order_id, amount=amount, method=method)

    # --- Transitions ----------------------------------------------------------

    def start_processing(self) -> list[DomainEvent]:
        if self.status is not PaymentStatus.PENDING:
            raise InvalidStatusTransition(
                f"Can only start processing from PENDING status "
                f"(payment {self.id} is {self.status.value})"
            )
        self.status = PaymentStatus.PROCESSING
        self.version += 1
        return []

    def complete(
        self, gateway_transaction_id: str, gateway_response_code: str
    ) -> list[DomainEvent]:
        if self.status is not PaymentStatus.PROCESSING:
            raise InvalidStatusTransition(
                f"Can only complete from PROCESSING status "
                f"(payment {self.id} is {self.status.value})"
            )
        self._append_transaction(
            PaymentStatus.COMPLETED,
            gateway_transaction_id=gateway_transaction_id,
            gateway_response_code=gateway_response_code,
        )
        self.status = PaymentStatus.COMPLETED
        self.version += 1
        return [
            PaymentCompleted(
                self.id, self.order_id, self.amount.amount, gateway_transaction_id
            )
        ]

    def fail(
        self, gateway_response_code: str, raw_response: str | None = None
    ) -> list[DomainEvent]:
        if self.status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            raise InvalidStatusTransition(
                f"Can only fail from PENDING or PROCESSING status "
                f"(payment {self.id} is {self.status.value})"
            )
        self._append_transaction(
            PaymentStatus.FAILED,
            gateway_response_code=gateway_response_code,
            raw_response=raw_response,
        )
        self.status = PaymentStatus.FAILED
        self.version += 1
        return [PaymentFailed(self.id, self.order_id, gateway_response_code)]

    def cancel(self) -> list[DomainEvent]:
        """Abandon a payment that never reached the gateway."""
        if self.status is not PaymentStatus.PENDING:
            raise InvalidStatusTransition(
                f"Can only cancel from PENDING status "
                f"(payment {self.id} is {self.status.value})"
            )
        self.status = PaymentStatus.CANCELLED
        self.version += 1
        return [PaymentCancelled(self.id, self.order_id)]

    def initiate_refund(
        self, refund_amount: Money
    ) -> tuple[RefundTransaction, list[DomainEvent]]:
        """Move COMPLETED -> REFUNDED and hand back a new PENDING refund.

        Refund completion is tracked on the RefundTransaction only; it is
        never synced back onto the payment.
        """
        if self.status is not PaymentStatus.COMPLETED:
            raise InvalidStatusTransition(
                f"Can only refund COMPLETED payments "
                f"(payment {self.id} is {self.status.value})"
            )
        if refund_amount.is_zero:
            raise InvalidAmount("Refund amount must be positive")
        if refund_amount > self.amount:
            raise InvalidAmount(
                f"Refund amount {refund_amount} exceeds payment amount {self.amount}"
            )
        latest = self.latest_transaction
        if latest is None:
            raise InvalidStatusTransition(
                f"Payment {self.id} has no transaction to refund"
            )

        refund = RefundTransaction.create(
            payment_id=self.id,
            payment_transaction_id=latest.id,
            refund_amount=refund_amount,
        )
        self.status = PaymentStatus.REFUNDED
        self.refund_id = refund.id
        self.refunded_amount = refund_amount
        self.version += 1
        return refund, [RefundInitiated(refund.id, self.id, refund_amount.amount)]

    def restore_refund(self) -> tuple[RefundTransaction, list[DomainEvent]]:
        """Rebuild the PENDING refund opened by ``initiate_refund``.

        For a REFUNDED payment whose refund record was never stored.  The
        rebuilt refund keeps the original id, so storing it twice conflicts.
        """
        latest = self.latest_transaction
        if (
            self.status is not PaymentStatus.REFUNDED
            or self.refund_id is None
            or self.refunded_amount is None
            or latest is None
        ):
            raise InvalidStatusTransition(
                f"Payment {self.id} has no refund to restore ({self.status.value})"
            )
        refund = RefundTransaction(
            id=self.refund_id,
            payment_id=self.id,
            payment_transaction_id=latest.id,
            refund_amount=self.refunded_amount,
        )
        return refund, [RefundInitiated(refund.id, self.id, refund.refund_amount.amount)]

    # --- Queries --------------------------------------------------------------

    @property
    def latest_transaction(self) -> PaymentTransaction | None:
        return self.transactions[-1] if self.transactions else None

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            PaymentStatus.COMPLETED,
            PaymentStatus.FAILED,
            PaymentStatus.REFUNDED,
            PaymentStatus.CANCELLED,
        )

    # --- Internal helpers -----------------------------------------------------

    def _append_transaction(self, status: PaymentStatus, **details: str | None) -> None:
        txn = PaymentTransaction(
            id=generate_id(), payment_id=self.id, status=status, **details
        )
        self.transactions = self.transactions + (txn,)
