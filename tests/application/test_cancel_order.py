"""Integration tests for the CancelOrder use case and its compensations."""

from decimal import Decimal

import pytest

from commerce.application.cancel_order import CancelOrderHandler
from commerce.application.checkout import CheckoutHandler
from commerce.application.dto import CheckoutItemSpec, CheckoutRequest
from commerce.application.order_lifecycle import (
    COUPON_REVERT_STEP,
    ConfirmOrderHandler,
    ProcessOrderHandler,
    release_step,
)
from commerce.application.process_payment import ProcessPaymentHandler
from commerce.application.ship_order import ShipOrderHandler
from commerce.domain.exceptions import (
    ConcurrentModification,
    InvalidStatusTransition,
    ValidationError,
)
from commerce.domain.model.coupon import Coupon, DiscountType
from commerce.domain.model.order import OrderStatus
from commerce.domain.model.payment import PaymentStatus
from commerce.domain.model.refund import RefundStatus
from commerce.domain.model.stock import StockEntry
from commerce.domain.model.value_objects import Money
from tests.fakes import FakeRepos


def _setup(coupon_code: str | None = None):
    repos = FakeRepos(
        stock=[StockEntry.create("HCM-01", "TEE-M", quantity_on_hand=20)],
        coupons=[Coupon.create("SAVE10", DiscountType.PERCENTAGE, Decimal("10"))],
    )
    checkout = CheckoutHandler(
        repos.orders, repos.stock, repos.coupons, repos.payments, repos.publisher
    )
    result = checkout.handle(
        CheckoutRequest(
            user_id="user-1",
            location_id="HCM-01",
            items=[CheckoutItemSpec("TEE-M", 3, "100000")],
            payment_method="momo",
            coupon_code=coupon_code,
        )
    )
    return repos, result.order.id, result.payment.id


def _cancel_handler(repos: FakeRepos) -> CancelOrderHandler:
    return CancelOrderHandler(
        order_repo=repos.orders,
        stock_repo=repos.stock,
        coupon_repo=repos.coupons,
        payment_repo=repos.payments,
        refund_repo=repos.refunds,
        publisher=repos.publisher,
    )


class TestCancelPendingOrder:

    def test_releases_stock_and_cancels_payment(self):
        repos, order_id, payment_id = _setup()

        dto = _cancel_handler(repos).handle(order_id, "customer request")

        assert dto.status == "CANCELLED"
        assert dto.cancel_reason == "customer request"
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.CANCELLED
        assert repos.refunds.list_by_payment(payment_id) == []

    def test_reverts_coupon_usage(self):
        repos, order_id, _ = _setup(coupon_code="SAVE10")
        assert repos.coupons.get_by_code("SAVE10").usage_count == 1

        _cancel_handler(repos).handle(order_id, "changed mind")

        assert repos.coupons.get_by_code("SAVE10").usage_count == 0
        assert "CouponUsageReverted" in repos.publisher.names

    def test_reason_required(self):
        repos, order_id, _ = _setup()
        with pytest.raises(ValidationError, match="reason"):
            _cancel_handler(repos).handle(order_id, "  ")
        assert repos.orders.get_by_id(order_id).status == OrderStatus.PENDING


class TestCancelPaidOrder:

    def test_completed_payment_is_refunded_in_full(self):
        repos, order_id, payment_id = _setup()
        ConfirmOrderHandler(repos.orders).handle(order_id)
        payments = ProcessPaymentHandler(repos.payments)
        payments.start(payment_id)
        payments.complete(payment_id, "MOMO-42")

        _cancel_handler(repos).handle(order_id, "out of stock at warehouse")

        payment = repos.payments.get_by_id(payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        [refund] = repos.refunds.list_by_payment(payment_id)
        assert refund.status == RefundStatus.PENDING
        assert refund.refund_amount == Money.of("300000")
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0

    def test_in_flight_payment_is_left_alone(self):
        repos, order_id, payment_id = _setup()
        ProcessPaymentHandler(repos.payments).start(payment_id)

        _cancel_handler(repos).handle(order_id, "customer request")

        assert repos.orders.get_by_id(order_id).status == OrderStatus.CANCELLED
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.PROCESSING


class TestCancelRejected:

    def test_shipped_order_cannot_be_cancelled(self):
        repos, order_id, payment_id = _setup()
        ConfirmOrderHandler(repos.orders).handle(order_id)
        ProcessOrderHandler(repos.orders).handle(order_id)
        ShipOrderHandler(repos.orders, repos.stock).handle(order_id)

        with pytest.raises(InvalidStatusTransition):
            _cancel_handler(repos).handle(order_id, "too late")

        assert repos.stock.get("HCM-01", "TEE-M").quantity_on_hand == 17
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.PENDING

    def test_cancelling_twice_rejected(self):
        repos, order_id, _ = _setup()
        handler = _cancel_handler(repos)
        handler.handle(order_id, "first")
        with pytest.raises(InvalidStatusTransition):
            handler.handle(order_id, "second")
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0


def _pay(repos: FakeRepos, payment_id: str) -> None:
    payments = ProcessPaymentHandler(repos.payments)
    payments.start(payment_id)
    payments.complete(payment_id, "MOMO-42")


def _stock_receipt(repos: FakeRepos):
    """A receipt for the same stock entry that commits between our load and save."""

    def interfere() -> None:
        entry = repos.stock.get("HCM-01", "TEE-M")
        entry.add_stock(1)
        repos.stock._store[("HCM-01", "TEE-M")] = entry
        entry.persisted_version = entry.version

    return interfere


def _raise_conflict() -> None:
    raise ConcurrentModification("simulated")


class TestCancelResumes:

    def test_records_each_compensation_on_the_order(self):
        repos, order_id, _ = _setup(coupon_code="SAVE10")

        _cancel_handler(repos).handle(order_id, "customer request")

        order = repos.orders.get_by_id(order_id)
        assert order.completed_steps == (release_step("TEE-M"), COUPON_REVERT_STEP)

    def test_failed_release_is_finished_by_cancelling_again(self):
        repos, order_id, payment_id = _setup(coupon_code="SAVE10")
        _pay(repos, payment_id)
        repos.stock.interfere = [_stock_receipt(repos) for _ in range(3)]

        with pytest.raises(ConcurrentModification):
            _cancel_handler(repos).handle(order_id, "warehouse fire")

        order = repos.orders.get_by_id(order_id)
        assert order.status == OrderStatus.CANCELLED
        assert order.completed_steps == ()
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 3
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.COMPLETED

        dto = _cancel_handler(repos).handle(order_id, "warehouse fire")

        assert dto.status == "CANCELLED"
        assert dto.cancel_reason == "warehouse fire"
        entry = repos.stock.get("HCM-01", "TEE-M")
        assert entry.quantity_reserved == 0
        assert entry.quantity_on_hand == 23
        assert repos.coupons.get_by_code("SAVE10").usage_count == 0
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.REFUNDED
        assert len(repos.refunds.list_by_payment(payment_id)) == 1

        with pytest.raises(InvalidStatusTransition):
            _cancel_handler(repos).handle(order_id, "third time")
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0
        assert repos.coupons.get_by_code("SAVE10").usage_count == 0

    def test_missing_refund_record_is_restored_by_cancelling_again(self):
        repos, order_id, payment_id = _setup()
        _pay(repos, payment_id)
        repos.refunds.interfere = [_raise_conflict] * 3

        with pytest.raises(ConcurrentModification):
            _cancel_handler(repos).handle(order_id, "customer request")

        payment = repos.payments.get_by_id(payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        assert repos.refunds.list_by_payment(payment_id) == []

        _cancel_handler(repos).handle(order_id, "customer request")

        [refund] = repos.refunds.list_by_payment(payment_id)
        assert refund.id == payment.refund_id
        assert refund.refund_amount == Money.of("300000")
        assert refund.status == RefundStatus.PENDING

    def test_events_of_committed_steps_are_published_on_failure(self):
        repos, order_id, _ = _setup(coupon_code="SAVE10")
        repos.coupons.interfere = [_raise_conflict] * 3

        with pytest.raises(ConcurrentModification):
            _cancel_handler(repos).handle(order_id, "customer request")

        assert "OrderCancelled" in repos.publisher.names
        assert "CouponUsageReverted" not in repos.publisher.names
        assert repos.orders.get_by_id(order_id).completed_steps == (release_step("TEE-M"),)

    def test_cancelling_twice_with_in_flight_payment_rejected(self):
        repos, order_id, payment_id = _setup()
        ProcessPaymentHandler(repos.payments).start(payment_id)
        handler = _cancel_handler(repos)
        handler.handle(order_id, "first")

        with pytest.raises(InvalidStatusTransition):
            handler.handle(order_id, "second")
        assert repos.payments.get_by_id(payment_id).status == PaymentStatus.PROCESSING
