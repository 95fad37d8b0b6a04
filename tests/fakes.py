"""In-memory fake repositories for testing.

These implement the same abstract interfaces as the JSON repositories
but keep everything in a dict. No file I/O, no side effects.  Like the
real repositories they hand out copies and refuse stale saves.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable

from commerce.application.event_publisher import EventPublisher
from commerce.domain.events import DomainEvent
from commerce.domain.model.coupon import Coupon, normalize_code
from commerce.domain.model.order import Order, OrderStatus
from commerce.domain.model.payment import Payment, PaymentStatus
from commerce.domain.model.refund import RefundStatus, RefundTransaction
from commerce.domain.model.stock import StockEntry, normalize_stock_key
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from commerce.domain.repository.stock_repository import StockRepository
from commerce.domain.repository.versioning import check_version, mark_persisted


class _VersionedStore:
    """Dict-backed storage with compare-and-swap saves.

    ``interfere`` queues callbacks that run just before the next saves,
    one per save, to simulate a concurrent writer getting in first.
    """

    def __init__(self) -> None:
        self._store: dict = {}
        self.interfere: list[Callable[[], None]] = []
        self.save_count = 0

    def _get(self, key):
        stored = self._store.get(key)
        return copy.deepcopy(stored) if stored is not None else None

    def _values(self) -> list:
        return [copy.deepcopy(v) for v in self._store.values()]

    def _put(self, key, aggregate) -> int:
        if self.interfere:
            self.interfere.pop(0)()
        stored = self._store.get(key)
        check_version(stored.version if stored is not None else None, aggregate, str(key))
        version = mark_persisted(aggregate)
        self._store[key] = copy.deepcopy(aggregate)
        self.save_count += 1
        return version

    def _remove(self, key, aggregate) -> None:
        if self.interfere:
            self.interfere.pop(0)()
        stored = self._store.get(key)
        check_version(stored.version if stored is not None else None, aggregate, str(key))
        self._store.pop(key, None)


class FakeStockRepository(_VersionedStore, StockRepository):

    def __init__(self, entries: Iterable[StockEntry] = ()) -> None:
        super().__init__()
        for entry in entries:
            self.save(entry)

    def get(self, location_id: str, variant_id: str) -> StockEntry | None:
        return self._get(normalize_stock_key(location_id, variant_id))

    def get_by_id(self, stock_id: str) -> StockEntry | None:
        for entry in self._values():
            if entry.id == stock_id:
                return entry
        return None

    def list_all(self) -> list[StockEntry]:
        return self._values()

    def save(self, entry: StockEntry) -> int:
        return self._put((entry.location_id, entry.variant_id), entry)


class FakeOrderRepository(_VersionedStore, OrderRepository):

    def get_by_id(self, order_id: str) -> Order | None:
        return self._get(order_id)

    def get_by_order_number(self, order_number: str) -> Order | None:
        for order in self._values():
            if order.order_number.value == order_number:
                return order
        return None

    def list_by_user(self, user_id: str, status: OrderStatus | None = None) -> list[Order]:
        return [
            o
            for o in self._values()
            if o.user_id == user_id and (status is None or o.status is status)
        ]

    def list_by_coupon(self, code: str) -> list[Order]:
        wanted = normalize_code(code)
        return [o for o in self._values() if o.coupon_code == wanted]

    def save(self, order: Order) -> int:
        return self._put(order.id, order)


class FakePaymentRepository(_VersionedStore, PaymentRepository):

    def get_by_id(self, payment_id: str) -> Payment | None:
        return self._get(payment_id)

    def list_by_order(self, order_id: str) -> list[Payment]:
        return [p for p in self._values() if p.order_id == order_id]

    def list_by_status(self, status: PaymentStatus) -> list[Payment]:
        return [p for p in self._values() if p.status is status]

    def save(self, payment: Payment) -> int:
        return self._put(payment.id, payment)


class FakeRefundRepository(_VersionedStore, RefundRepository):

    def get_by_id(self, refund_id: str) -> RefundTransaction | None:
        return self._get(refund_id)

    def list_by_payment(self, payment_id: str) -> list[RefundTransaction]:
        return [r for r in self._values() if r.payment_id == payment_id]

    def list_by_status(self, status: RefundStatus) -> list[RefundTransaction]:
        return [r for r in self._values() if r.status is status]

    def save(self, refund: RefundTransaction) -> int:
        return self._put(refund.id, refund)


class FakeCouponRepository(_VersionedStore, CouponRepository):

    def __init__(self, coupons: Iterable[Coupon] = ()) -> None:
        super().__init__()
        for coupon in coupons:
            self.save(coupon)

    def get_by_code(self, code: str) -> Coupon | None:
        return self._get(normalize_code(code))

    def list_all(self) -> list[Coupon]:
        return self._values()

    def save(self, coupon: Coupon) -> int:
        return self._put(coupon.code, coupon)

    def delete(self, coupon: Coupon) -> None:
        self._remove(coupon.code, coupon)


class FakeEventPublisher(EventPublisher):

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def publish(self, events: Iterable[DomainEvent]) -> None:
        self.events.extend(events)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.events]


class FakeRepos:
    """One of every fake repository plus a recording publisher."""

    def __init__(
        self,
        stock: Iterable[StockEntry] = (),
        coupons: Iterable[Coupon] = (),
    ) -> None:
        self.stock = FakeStockRepository(stock)
        self.orders = FakeOrderRepository()
        self.payments = FakePaymentRepository()
        self.refunds = FakeRefundRepository()
        self.coupons = FakeCouponRepository(coupons)
        self.publisher = FakeEventPublisher()
