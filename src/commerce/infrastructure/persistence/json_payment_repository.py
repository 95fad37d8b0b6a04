"""JSON-file-backed implementations of PaymentRepository and RefundRepository."""

from __future__ import annotations

from commerce.domain.model.payment import (
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentTransaction,
)
from commerce.domain.model.refund import RefundStatus, RefundTransaction
from commerce.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from commerce.infrastructure.persistence.json_file import (
    JsonFileRepository,
    datetime_from_raw,
    datetime_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonPaymentRepository(JsonFileRepository, PaymentRepository):

    # --- PaymentRepository interface ------------------------------------------

    def get_by_id(self, payment_id: str) -> Payment | None:
        raw = self._find(lambda r: r["id"] == payment_id)
        return self._to_domain(raw) if raw is not None else None

    def list_by_order(self, order_id: str) -> list[Payment]:
        # File order is insertion order, so the oldest attempt comes first.
        return [self._to_domain(r) for r in self._filter(lambda r: r["order_id"] == order_id)]

    def list_by_status(self, status: PaymentStatus) -> list[Payment]:
        return [
            self._to_domain(r) for r in self._filter(lambda r: r["status"] == status.value)
        ]

    def save(self, payment: Payment) -> int:
        return self._upsert(("id",), payment, self._to_raw(payment))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(payment: Payment) -> dict:
        return {
            "id": payment.id,
            "order_id": payment.order_id,
            "amount": money_to_raw(payment.amount),
            "method": payment.method.value,
            "status": payment.status.value,
            "transactions": [
                {
                    "id": txn.id,
                    "status": txn.status.value,
                    "gateway_transaction_id": txn.gateway_transaction_id,
                    "gateway_response_code": txn.gateway_response_code,
                    "raw_response": txn.raw_response,
                    "performed_at": datetime_to_raw(txn.performed_at),
                }
                for txn in payment.transactions
            ],
            "refund_id": payment.refund_id,
            "refunded_amount": money_to_raw(payment.refunded_amount),
            "created_at": datetime_to_raw(payment.created_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Payment:
        transactions = tuple(
            PaymentTransaction(
                id=t["id"],
                payment_id=raw["id"],
                status=PaymentStatus(t["status"]),
                gateway_transaction_id=t["gateway_transaction_id"],
                gateway_response_code=t["gateway_response_code"],
                raw_response=t.get("raw_response"),
                performed_at=datetime_from_raw(t["performed_at"]),
            )
            for t in raw["transactions"]
        )
        return Payment(
            id=raw["id"],
            order_id=raw["order_id"],
            amount=money_from_raw(raw["amount"]),
            method=PaymentMethod(raw["method"]),
            status=PaymentStatus(raw["status"]),
            transactions=transactions,
            refund_id=raw.get("refund_id"),
            refunded_amount=money_from_raw(raw.get("refunded_amount")),
            version=raw["version"],
            created_at=datetime_from_raw(raw["created_at"]),
            persisted_version=raw["version"],
        )


class JsonRefundRepository(JsonFileRepository, RefundRepository):

    # --- RefundRepository interface -------------------------------------------

    def get_by_id(self, refund_id: str) -> RefundTransaction | None:
        raw = self._find(lambda r: r["id"] == refund_id)
        return self._to_domain(raw) if raw is not None else None

    def list_by_payment(self, payment_id: str) -> list[RefundTransaction]:
        return [
            self._to_domain(r) for r in self._filter(lambda r: r["payment_id"] == payment_id)
        ]

    def list_by_status(self, status: RefundStatus) -> list[RefundTransaction]:
        return [
            self._to_domain(r) for r in self._filter(lambda r: r["status"] == status.value)
        ]

    def save(self, refund: RefundTransaction) -> int:
        return self._upsert(("id",), refund, self._to_raw(refund))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(refund: RefundTransaction) -> dict:
        return {
            "id": refund.id,
            "payment_id": refund.payment_id,
            "payment_transaction_id": refund.payment_transaction_id,
            "refund_amount": money_to_raw(refund.refund_amount),
            "status": refund.status.value,
            "gateway_refund_id": refund.gateway_refund_id,
            "created_at": datetime_to_raw(refund.created_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> RefundTransaction:
        return RefundTransaction(
            id=raw["id"],
            payment_id=raw["payment_id"],
            payment_transaction_id=raw["payment_transaction_id"],
            refund_amount=money_from_raw(raw["refund_amount"]),
            status=RefundStatus(raw["status"]),
            gateway_refund_id=raw.get("gateway_refund_id"),
            version=raw["version"],
            created_at=datetime_from_raw(raw["created_at"]),
            persisted_version=raw["version"],
        )
