"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.infrastructure.persistence.json_coupon_repository import (
    JsonCouponRepository,
)
from commerce.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from commerce.infrastructure.persistence.json_payment_repository import (
    JsonPaymentRepository,
    JsonRefundRepository,
)
from commerce.infrastructure.persistence.json_stock_repository import (
    JsonStockRepository,
)
from commerce.infrastructure.settings import get_settings


def stock_repository() -> JsonStockRepository:
    return JsonStockRepository(get_settings().data_dir / "stock.json")


def order_repository() -> JsonOrderRepository:
    return JsonOrderRepository(get_settings().data_dir / "orders.json")


def payment_repository() -> JsonPaymentRepository:
    return JsonPaymentRepository(get_settings().data_dir / "payments.json")


def refund_repository() -> JsonRefundRepository:
    return JsonRefundRepository(get_settings().data_dir / "refunds.json")


def coupon_repository() -> JsonCouponRepository:
    return JsonCouponRepository(get_settings().data_dir / "coupons.json")


def event_publisher() -> EventPublisher:
    return LoggingEventPublisher()


def retry_attempts() -> int:
    return get_settings().conflict_retry_attempts


def default_low_stock_threshold() -> int:
    return get_settings().default_low_stock_threshold
