"""Application service: Apply Coupon use case.

``quote`` previews the discount for an order value.  ``handle`` also
counts the redemption against the coupon, for orders placed outside the
checkout flow.
"""

from __future__ import annotations

import structlog

from commerce.application.dto import CouponApplicationDTO
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import EntityNotFoundError
from commerce.domain.model.coupon import Coupon
from commerce.domain.model.value_objects import Money
from commerce.domain.repository.coupon_repository import CouponRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)


def load_coupon(coupon_repo: CouponRepository, code: str) -> Coupon:
    coupon = coupon_repo.get_by_code(code)
    if coupon is None:
        raise EntityNotFoundError(f"Coupon not found: '{code}'")
    return coupon


class ApplyCouponHandler:

    def __init__(
        self,
        coupon_repo: CouponRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._coupon_repo = coupon_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts

    def quote(self, code: str, order_value: str) -> CouponApplicationDTO:
        value = Money.of(order_value)
        coupon = load_coupon(self._coupon_repo, code)
        discount = coupon.calculate_discount(value)
        return self._to_dto(coupon, value, discount)

    def handle(self, code: str, order_value: str) -> CouponApplicationDTO:
        value = Money.of(order_value)

        def attempt() -> tuple[Coupon, Money, list[DomainEvent]]:
            coupon = load_coupon(self._coupon_repo, code)
            discount = coupon.calculate_discount(value)
            events = coupon.record_usage()
            self._coupon_repo.save(coupon)
            return coupon, discount, events

        coupon, discount, events = retry_on_conflict(
            attempt, attempts=self._max_attempts, description=f"apply_coupon:{code}"
        )
        self._publisher.publish(events)
        logger.info(
            "coupon_applied",
            code=coupon.code,
            discount=str(discount.amount),
            usage_count=coupon.usage_count,
        )
        return self._to_dto(coupon, value, discount)

    @staticmethod
    def _to_dto(coupon: Coupon, value: Money, discount: Money) -> CouponApplicationDTO:
        return CouponApplicationDTO(
            code=coupon.code,
            order_value=str(value),
            discount=str(discount),
            final_total=str(value - discount),
            usage_count=coupon.usage_count,
        )


def revert_coupon_usage(
    coupon_repo: CouponRepository, code: str, max_attempts: int = DEFAULT_ATTEMPTS
) -> list[DomainEvent]:
    """Give back one redemption of ``code``, for an order that will not go ahead."""

    def attempt() -> list[DomainEvent]:
        coupon = load_coupon(coupon_repo, code)
        events = coupon.revert_usage()
        coupon_repo.save(coupon)
        return events

    return retry_on_conflict(
        attempt, attempts=max_attempts, description=f"revert_usage:{code}"
    )
