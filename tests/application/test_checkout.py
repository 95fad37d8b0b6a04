"""Integration tests for the Checkout use case."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from commerce.application.cancel_order import CancelOrderHandler
from commerce.application.checkout import CheckoutHandler
from commerce.application.dto import CheckoutItemSpec, CheckoutRequest
from commerce.application.order_lifecycle import COUPON_REVERT_STEP, release_step
from commerce.domain.exceptions import (
    ConcurrentModification,
    CouponExpired,
    EntityNotFoundError,
    InsufficientStock,
    InvalidStatusTransition,
    UsageLimitExceeded,
    ValidationError,
)
from commerce.domain.model.coupon import Coupon, DiscountType
from commerce.domain.model.order import OrderStatus
from commerce.domain.model.payment import PaymentMethod, PaymentStatus
from commerce.domain.model.stock import StockEntry
from commerce.domain.model.value_objects import Money
from tests.fakes import FakeRepos


def _setup(coupons=()) -> FakeRepos:
    return FakeRepos(
        stock=[
            StockEntry.create("HCM-01", "TEE-M", quantity_on_hand=20),
            StockEntry.create("HCM-01", "MUG-1", quantity_on_hand=5),
        ],
        coupons=coupons,
    )


def _handler(repos: FakeRepos) -> CheckoutHandler:
    return CheckoutHandler(
        order_repo=repos.orders,
        stock_repo=repos.stock,
        coupon_repo=repos.coupons,
        payment_repo=repos.payments,
        publisher=repos.publisher,
    )


def _request(**overrides) -> CheckoutRequest:
    kwargs = dict(
        user_id="user-1",
        location_id="HCM-01",
        items=[
            CheckoutItemSpec("TEE-M", 2, "150000"),
            CheckoutItemSpec("MUG-1", 1, "90000"),
        ],
        payment_method="vnpay",
        shipping_total="30000",
    )
    kwargs.update(overrides)
    return CheckoutRequest(**kwargs)


class TestCheckoutHappyPath:

    def test_places_order_reserves_stock_and_opens_payment(self):
        repos = _setup()

        result = _handler(repos).handle(_request())

        order = repos.orders.get_by_id(result.order.id)
        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Money.of("390000")
        assert order.grand_total == Money.of("420000")

        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 2
        assert repos.stock.get("HCM-01", "MUG-1").quantity_reserved == 1

        payment = repos.payments.get_by_order_id(order.id)
        assert payment.status == PaymentStatus.PENDING
        assert payment.method == PaymentMethod.VNPAY
        assert payment.amount == order.grand_total
        assert result.payment.id == payment.id

    def test_events_published_after_saves(self):
        repos = _setup()
        _handler(repos).handle(_request())
        assert repos.publisher.names[0] == "OrderCreated"
        assert repos.publisher.names.count("StockReserved") == 2

    def test_price_is_snapshotted(self):
        repos = _setup()
        result = _handler(repos).handle(_request())
        assert result.order.items[0].unit_price == "150,000.00 VND"
        assert result.order.items[0].total_price == "300,000.00 VND"


class TestCheckoutWithCoupon:

    def _coupon(self, **kwargs) -> Coupon:
        return Coupon.create("SAVE10", DiscountType.PERCENTAGE, Decimal("10"), **kwargs)

    def test_discount_applied_and_usage_recorded(self):
        repos = _setup(coupons=[self._coupon(max_discount_amount=Money.of("25000"))])

        result = _handler(repos).handle(_request(coupon_code="save10"))

        order = repos.orders.get_by_id(result.order.id)
        assert order.discount_total == Money.of("25000")
        assert order.grand_total == Money.of("395000")
        assert order.coupon_code == "SAVE10"
        assert repos.coupons.get_by_code("SAVE10").usage_count == 1
        assert "CouponUsageRecorded" in repos.publisher.names

    def test_unknown_coupon_rejected_before_stock_is_touched(self):
        repos = _setup()
        with pytest.raises(EntityNotFoundError, match="NOPE"):
            _handler(repos).handle(_request(coupon_code="NOPE"))
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0
        assert repos.orders.list_by_user("user-1") == []

    def test_invalid_coupon_rejected(self):
        expired = self._coupon(end_date=datetime(2020, 1, 1, tzinfo=timezone.utc))
        repos = _setup(coupons=[expired])
        with pytest.raises(CouponExpired):
            _handler(repos).handle(_request(coupon_code="SAVE10"))
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0

    def test_coupon_exhausted_mid_checkout_compensates(self):
        repos = _setup(coupons=[self._coupon(max_usage_limit=1)])

        def someone_else_redeems() -> None:
            coupon = repos.coupons.get_by_code("SAVE10")
            coupon.record_usage()
            repos.coupons._store["SAVE10"] = coupon
            coupon.persisted_version = coupon.version

        repos.coupons.interfere = [someone_else_redeems]

        with pytest.raises(UsageLimitExceeded):
            _handler(repos).handle(_request(coupon_code="SAVE10"))

        [order] = repos.orders.list_by_user("user-1")
        assert order.status == OrderStatus.CANCELLED
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0
        assert repos.stock.get("HCM-01", "MUG-1").quantity_reserved == 0
        assert repos.payments.list_by_order(order.id) == []
        assert COUPON_REVERT_STEP in order.completed_steps
        assert repos.coupons.get_by_code("SAVE10").usage_count == 1

    def test_payment_save_failure_undoes_order_stock_and_coupon(self):
        repos = _setup(coupons=[self._coupon()])
        repos.payments.interfere = [_raise_conflict]

        with pytest.raises(ConcurrentModification):
            _handler(repos).handle(_request(coupon_code="SAVE10"))

        [order] = repos.orders.list_by_user("user-1")
        assert order.status == OrderStatus.CANCELLED
        assert order.cancel_reason.startswith("Payment could not be opened")
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0
        assert repos.stock.get("HCM-01", "MUG-1").quantity_reserved == 0
        assert repos.coupons.get_by_code("SAVE10").usage_count == 0
        assert repos.payments.list_by_order(order.id) == []
        assert set(order.completed_steps) == {
            release_step("TEE-M"),
            release_step("MUG-1"),
            COUPON_REVERT_STEP,
        }
        assert repos.publisher.events == []

    def test_abandoned_order_cannot_be_compensated_twice(self):
        repos = _setup(coupons=[self._coupon()])
        repos.payments.interfere = [_raise_conflict]
        with pytest.raises(ConcurrentModification):
            _handler(repos).handle(_request(coupon_code="SAVE10"))
        [order] = repos.orders.list_by_user("user-1")

        cancel = CancelOrderHandler(
            repos.orders, repos.stock, repos.coupons, repos.payments, repos.refunds
        )
        with pytest.raises(InvalidStatusTransition):
            cancel.handle(order.id, "again")
        assert repos.coupons.get_by_code("SAVE10").usage_count == 0

    def test_full_discount_creates_no_payment(self):
        coupon = Coupon.create("FREE", DiscountType.PERCENTAGE, Decimal("100"))
        repos = _setup(coupons=[coupon])

        result = _handler(repos).handle(_request(coupon_code="FREE", shipping_total="0"))

        assert result.payment is None
        assert repos.orders.get_by_id(result.order.id).grand_total.is_zero


class TestCheckoutValidation:

    def test_insufficient_stock_leaves_nothing_behind(self):
        repos = _setup()
        request = _request(items=[CheckoutItemSpec("TEE-M", 2, "1"), CheckoutItemSpec("MUG-1", 6, "1")])

        with pytest.raises(InsufficientStock):
            _handler(repos).handle(request)

        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0
        assert repos.orders.list_by_user("user-1") == []
        assert repos.publisher.events == []

    def test_empty_cart_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            _handler(_setup()).handle(_request(items=[]))

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError, match="Unknown payment method"):
            _handler(_setup()).handle(_request(payment_method="bitcoin"))

    def test_order_save_conflict_releases_stock(self):
        repos = _setup()
        repos.orders.interfere = [_raise_conflict]

        with pytest.raises(ConcurrentModification):
            _handler(repos).handle(_request())

        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 0


def _raise_conflict() -> None:
    raise ConcurrentModification("simulated")
