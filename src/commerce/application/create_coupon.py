"""Application service: Create Coupon use case."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation

import structlog

from commerce.application.dto import CouponDTO, coupon_to_dto
from commerce.domain.exceptions import InvalidDiscount, ValidationError
from commerce.domain.model.coupon import Coupon, DiscountType, normalize_code
from commerce.domain.model.value_objects import Money
from commerce.domain.repository.coupon_repository import CouponRepository

logger = structlog.get_logger(__name__)


def parse_discount_type(value: str) -> DiscountType:
    try:
        return DiscountType(value.strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in DiscountType)
        raise ValidationError(
            f"Unknown discount type '{value}'. Expected one of: {allowed}"
        ) from None


def parse_discount_value(value: str) -> Decimal:
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise InvalidDiscount(f"Invalid discount value: {value!r}") from None
    if not parsed.is_finite():
        raise InvalidDiscount(f"Invalid discount value: {value!r}")
    return parsed


class CreateCouponHandler:

    def __init__(self, coupon_repo: CouponRepository) -> None:
        self._coupon_repo = coupon_repo

    def handle(
        self,
        code: str,
        discount_type: str,
        discount_value: str,
        min_order_value: str | None = None,
        max_discount_amount: str | None = None,
        max_usage_limit: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        description: str | None = None,
    ) -> CouponDTO:
        if code and self._coupon_repo.exists(normalize_code(code)):
            raise ValidationError(f"Coupon code already exists: '{normalize_code(code)}'")

        coupon = Coupon.create(
            code=code,
            discount_type=parse_discount_type(discount_type),
            discount_value=parse_discount_value(discount_value),
            min_order_value=Money.of(min_order_value) if min_order_value else None,
            max_discount_amount=(
                Money.of(max_discount_amount) if max_discount_amount else None
            ),
            max_usage_limit=max_usage_limit,
            start_date=start_date,
            end_date=end_date,
            description=description,
        )
        # A concurrent create of the same code fails the CAS save.
        self._coupon_repo.save(coupon)
        logger.info(
            "coupon_created",
            code=coupon.code,
            discount_type=coupon.discount_type.value,
            discount_value=str(coupon.discount_value),
        )
        return coupon_to_dto(coupon)
