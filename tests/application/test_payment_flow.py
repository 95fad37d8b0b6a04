"""Integration tests for the payment use cases."""

import pytest

from commerce.application.checkout import CheckoutHandler
from commerce.application.create_payment import CreatePaymentHandler
from commerce.application.dto import CheckoutItemSpec, CheckoutRequest
from commerce.application.process_payment import ProcessPaymentHandler
from commerce.application.show_payment import ShowPaymentHandler
from commerce.domain.exceptions import (
    EntityNotFoundError,
    InvalidStatusTransition,
    ValidationError,
)
from commerce.domain.model.payment import PaymentStatus
from commerce.domain.model.stock import StockEntry
from tests.fakes import FakeRepos


def _setup():
    repos = FakeRepos(stock=[StockEntry.create("HCM-01", "TEE-M", quantity_on_hand=20)])
    checkout = CheckoutHandler(
        repos.orders, repos.stock, repos.coupons, repos.payments, repos.publisher
    )
    result = checkout.handle(
        CheckoutRequest(
            user_id="user-1",
            location_id="HCM-01",
            items=[CheckoutItemSpec("TEE-M", 1, "120000")],
            payment_method="vnpay",
        )
    )
    return repos, result.order.id, result.payment.id


class TestProcessPayment:

    def test_start_and_complete(self):
        repos, _, payment_id = _setup()
        handler = ProcessPaymentHandler(repos.payments, repos.publisher)

        assert handler.start(payment_id).status == "PROCESSING"
        dto = handler.complete(payment_id, "VNP-1001")

        assert dto.status == "COMPLETED"
        assert len(dto.transactions) == 1
        assert dto.transactions[0].gateway_transaction_id == "VNP-1001"
        assert dto.transactions[0].gateway_response_code == "00"
        assert repos.publisher.names[-1] == "PaymentCompleted"

    def test_fail_records_response(self):
        repos, _, payment_id = _setup()
        handler = ProcessPaymentHandler(repos.payments)
        handler.start(payment_id)

        dto = handler.fail(payment_id, "24", raw_response="user cancelled at gateway")

        assert dto.status == "FAILED"
        payment = repos.payments.get_by_id(payment_id)
        assert payment.latest_transaction.raw_response == "user cancelled at gateway"

    def test_complete_without_start_rejected(self):
        repos, _, payment_id = _setup()
        with pytest.raises(InvalidStatusTransition):
            ProcessPaymentHandler(repos.payments).complete(payment_id, "VNP-1")
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.PENDING

    def test_blank_gateway_id_rejected(self):
        repos, _, payment_id = _setup()
        with pytest.raises(ValidationError):
            ProcessPaymentHandler(repos.payments).complete(payment_id, " ")

    def test_unknown_payment(self):
        repos, _, _ = _setup()
        with pytest.raises(EntityNotFoundError, match="Payment"):
            ProcessPaymentHandler(repos.payments).start("nope")


class TestCreatePayment:

    def test_new_attempt_after_failure(self):
        repos, order_id, payment_id = _setup()
        ProcessPaymentHandler(repos.payments).fail(payment_id, "05")

        dto = CreatePaymentHandler(repos.orders, repos.payments).handle(order_id, "COD")

        assert dto.method == "cod"
        assert dto.amount == "120,000.00 VND"
        assert repos.payments.get_by_order_id(order_id).id == dto.id
        assert len(repos.payments.list_by_order(order_id)) == 2

    def test_second_open_payment_rejected(self):
        repos, order_id, _ = _setup()
        with pytest.raises(ValidationError, match="already has a PENDING payment"):
            CreatePaymentHandler(repos.orders, repos.payments).handle(order_id, "cod")

    def test_unknown_method_rejected(self):
        repos, order_id, _ = _setup()
        with pytest.raises(ValidationError, match="Unknown payment method"):
            CreatePaymentHandler(repos.orders, repos.payments).handle(order_id, "paypal")


class TestShowPayment:

    def test_show_with_refunds(self):
        repos, order_id, payment_id = _setup()
        payment_dto, refunds = ShowPaymentHandler(repos.payments, repos.refunds).handle(payment_id)
        assert payment_dto.order_id == order_id
        assert refunds == []

    def test_list_for_order(self):
        repos, order_id, payment_id = _setup()
        listed = ShowPaymentHandler(repos.payments, repos.refunds).list_for_order(order_id)
        assert [p.id for p in listed] == [payment_id]
