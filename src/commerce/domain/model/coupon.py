"""Coupon aggregate: promotional codes and the discount engine.

The upper-cased code is the coupon's identity.  ``usage_count`` tracks
how many placed orders used the coupon, against an optional limit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from commerce.domain.events import CouponUsageRecorded, CouponUsageReverted, DomainEvent
from commerce.domain.exceptions import (
    CouponExpired,
    CouponInactive,
    CouponNotStarted,
    InvalidDiscount,
    InvalidQuantity,
    MinOrderNotMet,
    UsageLimitExceeded,
    ValidationError,
)
from commerce.domain.model.value_objects import Money

MAX_PERCENTAGE = Decimal("100")


class DiscountType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _as_utc(moment: datetime | None) -> datetime | None:
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)


@dataclass
class Coupon:
    """Aggregate root for a promotional code.

    Invariants:
    - ``discount_value > 0``; at most 100 for PERCENTAGE coupons
    - ``usage_count <= max_usage_limit`` whenever a limit is set
    """

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_order_value: Money
    max_discount_amount: Money | None = None
    max_usage_limit: int | None = None
    usage_count: int = 0
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool = True
    description: str | None = None
    version: int = 0
    persisted_version: int | None = field(default=None, compare=False, repr=False)

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def create(
        code: str,
        discount_type: DiscountType,
        discount_value: Decimal,
        min_order_value: Money | None = None,
        max_discount_amount: Money | None = None,
        max_usage_limit: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        description: str | None = None,
        is_active: bool = True,
    ) -> Coupon:
        if not code or not code.strip():
            raise ValidationError("Coupon code is required")
        if discount_value <= 0:
            raise InvalidDiscount("Discount value must be positive")
        if discount_type is DiscountType.PERCENTAGE and discount_value > MAX_PERCENTAGE:
            raise InvalidDiscount("Percentage discount cannot exceed 100%")
        if max_usage_limit is not None and max_usage_limit < 0:
            raise InvalidQuantity("Usage limit cannot be negative")
        start_date, end_date = _as_utc(start_date), _as_utc(end_date)
        _check_period(start_date, end_date)

        return Coupon(
            code=normalize_code(code),
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_value=min_order_value or Money.zero(),
            max_discount_amount=max_discount_amount,
            max_usage_limit=max_usage_limit,
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
            description=description,
        )

    # --- Validation & discount ------------------------------------------------

    def validate(self, order_value: Money, now: datetime | None = None) -> None:
        """Raise the first applicable CouponError, checked in a fixed order."""
        now = _as_utc(now) or datetime.now(timezone.utc)
        if not self.is_active:
            raise CouponInactive(f"Coupon {self.code} is not active")
        if self.start_date is not None and now < self.start_date:
            raise CouponNotStarted(f"Coupon {self.code} is not yet valid")
        if self.end_date is not None and now > self.end_date:
            raise CouponExpired(f"Coupon {self.code} has expired")
        if self.max_usage_limit is not None and self.usage_count >= self.max_usage_limit:
            raise UsageLimitExceeded(f"Coupon {self.code} usage limit exceeded")
        if order_value.amount < self.min_order_value.amount:
            raise MinOrderNotMet(
                f"Minimum order value of {self.min_order_value} required"
            )

    def calculate_discount(self, order_value: Money, now: datetime | None = None) -> Money:
        """Validate, then compute the discount for ``order_value``.

        The result never exceeds ``order_value``.
        """
        self.validate(order_value, now)

        if self.discount_type is DiscountType.PERCENTAGE:
            discount = order_value.percent(self.discount_value)
            cap = self.max_discount_amount
            if cap is not None and discount.amount > cap.amount:
                discount = Money(cap.amount, order_value.currency)
        else:
            discount = Money(self.discount_value, order_value.currency)

        if discount > order_value:
            discount = order_value
        return discount

    def is_valid(self, now: datetime | None = None) -> bool:
        """Like ``validate`` minus the order-value check, as a predicate."""
        now = _as_utc(now) or datetime.now(timezone.utc)
        if not self.is_active:
            return False
        if self.start_date is not None and now < self.start_date:
            return False
        if self.end_date is not None and now > self.end_date:
            return False
        return not self._limit_reached

    @property
    def remaining_usage(self) -> int | None:
        if self.max_usage_limit is None:
            return None
        return max(0, self.max_usage_limit - self.usage_count)

    # --- Usage tracking -------------------------------------------------------

    def record_usage(self) -> list[DomainEvent]:
        """Count one placed order against this coupon."""
        if self._limit_reached:
            raise UsageLimitExceeded(f"Coupon {self.code} usage limit exceeded")
        self.usage_count += 1
        self.version += 1
        return [CouponUsageRecorded(self.code, self.usage_count)]

    def revert_usage(self) -> list[DomainEvent]:
        """Give one use back (order cancelled).  Never goes below zero."""
        if self.usage_count == 0:
            return []
        self.usage_count -= 1
        self.version += 1
        return [CouponUsageReverted(self.code, self.usage_count)]

    # --- Administration -------------------------------------------------------

    def activate(self) -> list[DomainEvent]:
        self.is_active = True
        self.version += 1
        return []

    def deactivate(self) -> list[DomainEvent]:
        self.is_active = False
        self.version += 1
        return []

    def update_validity_period(
        self, start_date: datetime | None, end_date: datetime | None
    ) -> list[DomainEvent]:
        start_date, end_date = _as_utc(start_date), _as_utc(end_date)
        _check_period(start_date, end_date)
        self.start_date = start_date
        self.end_date = end_date
        self.version += 1
        return []

    def update_usage_limit(self, limit: int | None) -> list[DomainEvent]:
        if limit is not None and limit < self.usage_count:
            raise InvalidQuantity(
                f"Usage limit {limit} is below current usage {self.usage_count}"
            )
        self.max_usage_limit = limit
        self.version += 1
        return []

    @property
    def _limit_reached(self) -> bool:
        return self.max_usage_limit is not None and self.usage_count >= self.max_usage_limit


def _check_period(start_date: datetime | None, end_date: datetime | None) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("Coupon start date must not be after its end date")
