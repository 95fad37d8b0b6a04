"""Application service: Show Coupon use case (query)."""

from __future__ import annotations

from commerce.application.apply_coupon import load_coupon
from commerce.application.dto import CouponDTO, coupon_to_dto
from commerce.domain.repository.coupon_repository import CouponRepository


class ShowCouponHandler:

    def __init__(self, coupon_repo: CouponRepository) -> None:
        self._coupon_repo = coupon_repo

    def handle(self, code: str) -> CouponDTO:
        return coupon_to_dto(load_coupon(self._coupon_repo, code))

    def list(self, valid_only: bool = False) -> list[CouponDTO]:
        coupons = self._coupon_repo.list_valid() if valid_only else self._coupon_repo.list_all()
        return [coupon_to_dto(c) for c in sorted(coupons, key=lambda c: c.code)]
