"""Application services: plain Order transitions.

Confirm, process and deliver touch only the Order aggregate.  Each runs
a load -> transition -> save cycle, retried if another writer got there
first (the retry re-checks the transition against fresh state).
"""

from __future__ import annotations

import structlog

from commerce.application.dto import OrderDTO, order_to_dto
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import EntityNotFoundError
from commerce.domain.model.order import Order
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict

logger = structlog.get_logger(__name__)


def load_order(order_repo: OrderRepository, order_id: str) -> Order:
    order = order_repo.get_by_id(order_id)
    if order is None:
        raise EntityNotFoundError(f"Order {order_id} not found")
    return order


# --- Follow-up steps ----------------------------------------------------------

COUPON_REVERT_STEP = "coupon_revert"


def release_step(variant_id: str) -> str:
    return f"release:{variant_id}"


def sale_step(variant_id: str) -> str:
    return f"sale:{variant_id}"


def record_order_step(
    order_repo: OrderRepository,
    order_id: str,
    step: str,
    max_attempts: int = DEFAULT_ATTEMPTS,
) -> Order:
    """Mark ``step`` done on the stored order and return the fresh order."""

    def attempt() -> Order:
        order = load_order(order_repo, order_id)
        order.record_step(step)
        order_repo.save(order)
        return order

    return retry_on_conflict(
        attempt, attempts=max_attempts, description=f"record_step:{order_id}:{step}"
    )


class _OrderTransitionHandler:
    """Shared load/transition/save loop."""

    action = ""

    def __init__(
        self,
        order_repo: OrderRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._order_repo = order_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts

    def handle(self, order_id: str) -> OrderDTO:
        def attempt() -> tuple[Order, list[DomainEvent]]:
            order = load_order(self._order_repo, order_id)
            events = self._transition(order)
            self._order_repo.save(order)
            return order, events

        order, events = retry_on_conflict(
            attempt,
            attempts=self._max_attempts,
            description=f"{self.action}:{order_id}",
        )
        self._publisher.publish(events)
        logger.info(f"order_{self.action}", order_id=order.id, status=order.status.value)
        return order_to_dto(order)

    def _transition(self, order: Order) -> list[DomainEvent]:
        raise NotImplementedError


class ConfirmOrderHandler(_OrderTransitionHandler):
    """PENDING -> CONFIRMED."""

    action = "confirmed"

    def _transition(self, order: Order) -> list[DomainEvent]:
        return order.confirm()


class ProcessOrderHandler(_OrderTransitionHandler):
    """CONFIRMED -> PROCESSING."""

    action = "processing"

    def _transition(self, order: Order) -> list[DomainEvent]:
        return order.process()


class DeliverOrderHandler(_OrderTransitionHandler):
    """SHIPPED -> DELIVERED."""

    action = "delivered"

    def _transition(self, order: Order) -> list[DomainEvent]:
        return order.deliver()
