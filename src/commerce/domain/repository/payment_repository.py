"""Abstract repositories for the Payment and RefundTransaction aggregates."""

from __future__ import annotations

from abc import ABC, abstractmethod

from commerce.domain.model.payment import Payment, PaymentStatus
from commerce.domain.model.refund import RefundStatus, RefundTransaction


class PaymentRepository(ABC):

    @abstractmethod
    def get_by_id(self, payment_id: str) -> Payment | None:
        """Return a payment by its ID, or None if not found."""

    @abstractmethod
    def list_by_order(self, order_id: str) -> list[Payment]:
        """Return every payment attempt for an order, oldest first."""

    def get_by_order_id(self, order_id: str) -> Payment | None:
        """Return the most recent payment attempt for an order, or None."""
        payments = self.list_by_order(order_id)
        return payments[-1] if payments else None

    @abstractmethod
    def list_by_status(self, status: PaymentStatus) -> list[Payment]:
        """Return every payment in the given status."""

    @abstractmethod
    def save(self, payment: Payment) -> int:
        """Persist a new or updated payment and return the stored version."""


class RefundRepository(ABC):

    @abstractmethod
    def get_by_id(self, refund_id: str) -> RefundTransaction | None:
        """Return a refund by its ID, or None if not found."""

    @abstractmethod
    def list_by_payment(self, payment_id: str) -> list[RefundTransaction]:
        """Return every refund issued against a payment."""

    @abstractmethod
    def list_by_status(self, status: RefundStatus) -> list[RefundTransaction]:
        """Return every refund in the given status."""

    @abstractmethod
    def save(self, refund: RefundTransaction) -> int:
        """Persist a new or updated refund and return the stored version."""
