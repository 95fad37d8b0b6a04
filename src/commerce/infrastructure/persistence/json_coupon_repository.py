"""JSON-file-backed implementation of CouponRepository."""

from __future__ import annotations

from decimal import Decimal

from commerce.domain.model.coupon import Coupon, DiscountType, normalize_code
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.infrastructure.persistence.json_file import (
    JsonFileRepository,
    datetime_from_raw,
    datetime_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonCouponRepository(JsonFileRepository, CouponRepository):

    # --- CouponRepository interface -------------------------------------------

    def get_by_code(self, code: str) -> Coupon | None:
        wanted = normalize_code(code)
        raw = self._find(lambda r: r["code"] == wanted)
        return self._to_domain(raw) if raw is not None else None

    def list_all(self) -> list[Coupon]:
        return [self._to_domain(raw) for raw in self._load_raw()]

    def save(self, coupon: Coupon) -> int:
        return self._upsert(("code",), coupon, self._to_raw(coupon))

    def delete(self, coupon: Coupon) -> None:
        self._remove(("code",), coupon, self._to_raw(coupon))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(coupon: Coupon) -> dict:
        return {
            "code": coupon.code,
            "discount_type": coupon.discount_type.value,
            "discount_value": str(coupon.discount_value),
            "min_order_value": money_to_raw(coupon.min_order_value),
            "max_discount_amount": money_to_raw(coupon.max_discount_amount),
            "max_usage_limit": coupon.max_usage_limit,
            "usage_count": coupon.usage_count,
            "start_date": datetime_to_raw(coupon.start_date),
            "end_date": datetime_to_raw(coupon.end_date),
            "is_active": coupon.is_active,
            "description": coupon.description,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Coupon:
        return Coupon(
            code=raw["code"],
            discount_type=DiscountType(raw["discount_type"]),
            discount_value=Decimal(raw["discount_value"]),
            min_order_value=money_from_raw(raw["min_order_value"]),
            max_discount_amount=money_from_raw(raw.get("max_discount_amount")),
            max_usage_limit=raw.get("max_usage_limit"),
            usage_count=raw["usage_count"],
            start_date=datetime_from_raw(raw.get("start_date")),
            end_date=datetime_from_raw(raw.get("end_date")),
            is_active=raw["is_active"],
            description=raw.get("description"),
            version=raw["version"],
            persisted_version=raw["version"],
        )
