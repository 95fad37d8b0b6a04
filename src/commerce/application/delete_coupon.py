"""Application service: Delete Coupon use case (administration).

A coupon can be deleted once no order still depends on it: an order
that may yet be cancelled, or a cancelled one whose redemption has not
been given back, would otherwise revert usage on a missing coupon.
"""

from __future__ import annotations

import structlog

from commerce.application.apply_coupon import load_coupon
from commerce.application.order_lifecycle import COUPON_REVERT_STEP
from commerce.domain.exceptions import ValidationError
from commerce.domain.model.order import Order, OrderStatus
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


def _depends_on_coupon(order: Order) -> bool:
    if order.is_cancellable:
        return True
    return order.status is OrderStatus.CANCELLED and not order.has_completed(
        COUPON_REVERT_STEP
    )


class DeleteCouponHandler:

    def __init__(self, coupon_repo: CouponRepository, order_repo: OrderRepository) -> None:
        self._coupon_repo = coupon_repo
        self._order_repo = order_repo

    def handle(self, code: str) -> None:
        if not code or not code.strip():
            raise ValidationError("Coupon code is required")

        coupon = load_coupon(self._coupon_repo, code)
        open_orders = [
            o.order_number.value
            for o in self._order_repo.list_by_coupon(coupon.code)
            if _depends_on_coupon(o)
        ]
        if open_orders:
            raise ValidationError(
                f"Coupon {coupon.code} is used by open orders: {', '.join(sorted(open_orders))}"
            )

        self._coupon_repo.delete(coupon)
        logger.info("coupon_deleted", code=coupon.code, usage_count=coupon.usage_count)
