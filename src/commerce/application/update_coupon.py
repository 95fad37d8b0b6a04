"""Application service: Update Coupon use case (administration)."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import structlog

from commerce.application.apply_coupon import load_coupon
from commerce.application.dto import CouponDTO, coupon_to_dto
from commerce.domain.events import DomainEvent
from commerce.domain.model.coupon import Coupon
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)


class UpdateCouponHandler:

    def __init__(
        self, coupon_repo: CouponRepository, max_attempts: int = DEFAULT_ATTEMPTS
    ) -> None:
        self._coupon_repo = coupon_repo
        self._max_attempts = max_attempts

    def activate(self, code: str) -> CouponDTO:
        return self._update(code, "activated", lambda c: c.activate())

    def deactivate(self, code: str) -> CouponDTO:
        return self._update(code, "deactivated", lambda c: c.deactivate())

    def update_validity_period(
        self, code: str, start_date: datetime | None, end_date: datetime | None
    ) -> CouponDTO:
        return self._update(
            code,
            "validity_updated",
            lambda c: c.update_validity_period(start_date, end_date),
        )

    def update_usage_limit(self, code: str, limit: int | None) -> CouponDTO:
        return self._update(code, "limit_updated", lambda c: c.update_usage_limit(limit))

    def _update(
        self, code: str, action: str, mutate: Callable[[Coupon], list[DomainEvent]]
    ) -> CouponDTO:
        def attempt() -> Coupon:
            coupon = load_coupon(self._coupon_repo, code)
            mutate(coupon)
            self._coupon_repo.save(coupon)
            return coupon

        coupon = retry_on_conflict(
            attempt, attempts=self._max_attempts, description=f"coupon_{action}:{code}"
        )
        logger.info(f"coupon_{action}", code=coupon.code)
        return coupon_to_dto(coupon)
