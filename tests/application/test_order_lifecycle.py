"""Integration tests for the order transition, ship and show use cases."""

import pytest

from commerce.application.checkout import CheckoutHandler
from commerce.application.dto import CheckoutItemSpec, CheckoutRequest
from commerce.application.order_lifecycle import (
    ConfirmOrderHandler,
    DeliverOrderHandler,
    ProcessOrderHandler,
    sale_step,
)
from commerce.application.ship_order import ShipOrderHandler
from commerce.application.show_order import ShowOrderHandler
from commerce.domain.exceptions import (
    ConcurrentModification,
    EntityNotFoundError,
    InvalidReservation,
    InvalidStatusTransition,
)
from commerce.domain.model.order import OrderStatus
from commerce.domain.model.stock import StockEntry
from commerce.domain.service.stock_reservation_service import StockReservationService
from tests.fakes import FakeRepos


def _setup() -> tuple[FakeRepos, str]:
    repos = FakeRepos(stock=[StockEntry.create("HCM-01", "TEE-M", quantity_on_hand=20)])
    checkout = CheckoutHandler(
        repos.orders, repos.stock, repos.coupons, repos.payments, repos.publisher
    )
    result = checkout.handle(
        CheckoutRequest(
            user_id="user-1",
            location_id="HCM-01",
            items=[CheckoutItemSpec("TEE-M", 4, "150000")],
        )
    )
    return repos, result.order.id


def _ship(repos: FakeRepos, order_id: str) -> None:
    ConfirmOrderHandler(repos.orders, repos.publisher).handle(order_id)
    ProcessOrderHandler(repos.orders, repos.publisher).handle(order_id)
    ShipOrderHandler(repos.orders, repos.stock, repos.publisher).handle(order_id)


class TestTransitions:

    def test_confirm(self):
        repos, order_id = _setup()
        dto = ConfirmOrderHandler(repos.orders, repos.publisher).handle(order_id)

        assert dto.status == "CONFIRMED"
        assert repos.orders.get_by_id(order_id).status == OrderStatus.CONFIRMED
        assert repos.publisher.names[-1] == "OrderStatusChanged"

    def test_process_before_confirm_rejected(self):
        repos, order_id = _setup()
        with pytest.raises(InvalidStatusTransition):
            ProcessOrderHandler(repos.orders).handle(order_id)
        assert repos.orders.get_by_id(order_id).status == OrderStatus.PENDING

    def test_unknown_order_rejected(self):
        repos, _ = _setup()
        with pytest.raises(EntityNotFoundError, match="not found"):
            ConfirmOrderHandler(repos.orders).handle("missing")

    def test_conflicting_writer_is_retried(self):
        repos, order_id = _setup()

        def concurrent_confirm() -> None:
            order = repos.orders.get_by_id(order_id)
            order.confirm()
            repos.orders._store[order_id] = order
            order.persisted_version = order.version

        repos.orders.interfere = [concurrent_confirm]

        # Our retry re-reads a CONFIRMED order and may not confirm it again.
        with pytest.raises(InvalidStatusTransition):
            ConfirmOrderHandler(repos.orders).handle(order_id)

    def test_persistent_conflict_surfaces(self):
        repos, order_id = _setup()
        repos.orders.interfere = [_raise_conflict, _raise_conflict]

        with pytest.raises(ConcurrentModification):
            ConfirmOrderHandler(repos.orders, max_attempts=2).handle(order_id)


class TestShipOrder:

    def test_ship_converts_reservation_into_sale(self):
        repos, order_id = _setup()
        _ship(repos, order_id)

        entry = repos.stock.get("HCM-01", "TEE-M")
        assert entry.quantity_on_hand == 16
        assert entry.quantity_reserved == 0
        assert repos.orders.get_by_id(order_id).status == OrderStatus.SHIPPED
        assert "SaleConfirmed" in repos.publisher.names

    def test_ship_before_processing_rejected_without_touching_stock(self):
        repos, order_id = _setup()
        with pytest.raises(InvalidStatusTransition):
            ShipOrderHandler(repos.orders, repos.stock).handle(order_id)
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 4

    def test_deliver(self):
        repos, order_id = _setup()
        _ship(repos, order_id)
        dto = DeliverOrderHandler(repos.orders).handle(order_id)
        assert dto.status == "DELIVERED"

    def test_ship_without_reservation_leaves_order_processing(self):
        repos, order_id = _setup()
        ConfirmOrderHandler(repos.orders).handle(order_id)
        ProcessOrderHandler(repos.orders).handle(order_id)
        StockReservationService(repos.stock).release("HCM-01", {"TEE-M": 4})

        with pytest.raises(InvalidReservation):
            ShipOrderHandler(repos.orders, repos.stock).handle(order_id)

        assert repos.orders.get_by_id(order_id).status == OrderStatus.PROCESSING
        assert repos.stock.get("HCM-01", "TEE-M").quantity_on_hand == 20

    def test_failed_sale_is_finished_by_shipping_again(self):
        repos, order_id = _setup()
        ConfirmOrderHandler(repos.orders).handle(order_id)
        ProcessOrderHandler(repos.orders).handle(order_id)
        repos.stock.interfere = [_stock_receipt(repos) for _ in range(3)]

        with pytest.raises(ConcurrentModification):
            ShipOrderHandler(repos.orders, repos.stock, repos.publisher).handle(order_id)

        order = repos.orders.get_by_id(order_id)
        assert order.status == OrderStatus.SHIPPED
        assert order.completed_steps == ()
        assert repos.stock.get("HCM-01", "TEE-M").quantity_reserved == 4

        dto = ShipOrderHandler(repos.orders, repos.stock, repos.publisher).handle(order_id)

        assert dto.status == "SHIPPED"
        entry = repos.stock.get("HCM-01", "TEE-M")
        assert entry.quantity_on_hand == 19
        assert entry.quantity_reserved == 0
        assert repos.orders.get_by_id(order_id).completed_steps == (sale_step("TEE-M"),)
        assert repos.publisher.names.count("OrderStatusChanged") == 1

        with pytest.raises(InvalidStatusTransition):
            ShipOrderHandler(repos.orders, repos.stock).handle(order_id)
        assert repos.stock.get("HCM-01", "TEE-M").quantity_on_hand == 19


class TestShowOrder:

    def test_by_id_and_by_number(self):
        repos, order_id = _setup()
        handler = ShowOrderHandler(repos.orders)

        by_id = handler.handle(order_id)
        by_number = handler.handle(by_id.order_number)

        assert by_number.id == order_id
        assert by_id.grand_total == "600,000.00 VND"
        assert by_id.items[0].quantity == 4

    def test_list_for_user(self):
        repos, order_id = _setup()
        assert [o.id for o in ShowOrderHandler(repos.orders).list_for_user("user-1")] == [order_id]

    def test_missing(self):
        repos, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            ShowOrderHandler(repos.orders).handle("ORD-0-0000")


def _raise_conflict() -> None:
    raise ConcurrentModification("simulated")


def _stock_receipt(repos: FakeRepos):
    """A receipt for the same stock entry that commits between our load and save."""

    def interfere() -> None:
        entry = repos.stock.get("HCM-01", "TEE-M")
        entry.add_stock(1)
        repos.stock._store[("HCM-01", "TEE-M")] = entry
        entry.persisted_version = entry.version

    return interfere
