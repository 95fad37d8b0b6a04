"""Application service: Ship Order use case.

Moves the order PROCESSING -> SHIPPED and turns each line's stock
reservation into a permanent sale.

The reservations are checked before the transition, so an order whose
stock cannot be sold stays PROCESSING.  Each sale is recorded on the
order as it commits; if one fails, shipping the same order again sells
the remaining lines.
"""

from __future__ import annotations

import structlog

from commerce.application.dto import OrderDTO, order_to_dto
from commerce.application.event_publisher import EventPublisher, LoggingEventPublisher
from commerce.application.order_lifecycle import load_order, record_order_step, sale_step
from commerce.domain.events import DomainEvent
from commerce.domain.exceptions import DomainException
from commerce.domain.model.order import Order, OrderStatus
from commerce.domain.repository.order_repository import OrderRepository
from commerce.domain.repository.stock_repository import StockRepository
from commerce.domain.service.conflicts import DEFAULT_ATTEMPTS, retry_on_conflict
from commerce.domain.service.stock_reservation_service import (
    StockReservationService,
    quantities_by_variant,
)

logger = structlog.get_logger(__name__)


class ShipOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        stock_repo: StockRepository,
        publisher: EventPublisher | None = None,
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._order_repo = order_repo
        self._publisher = publisher or LoggingEventPublisher()
        self._max_attempts = max_attempts
        self._reservations = StockReservationService(stock_repo, max_attempts)

    def handle(self, order_id: str) -> OrderDTO:
        order = load_order(self._order_repo, order_id)
        quantities = quantities_by_variant(order.items)
        unsold = [v for v in quantities if not order.has_completed(sale_step(v))]

        if order.status is OrderStatus.SHIPPED and unsold:
            logger.info("order_ship_resumed", order_id=order.id, variants=unsold)
            events: list[DomainEvent] = []
        else:
            if order.status is OrderStatus.PROCESSING:
                self._reservations.check_reserved(order.location_id, quantities)
            # The transition re-validates against fresh state, so a
            # concurrent cancel wins before any stock moves.
            order, events = retry_on_conflict(
                lambda: self._ship(order_id),
                attempts=self._max_attempts,
                description=f"ship:{order_id}",
            )

        try:
            for variant_id in unsold:
                events += self._reservations.confirm_sale(
                    order.location_id, {variant_id: quantities[variant_id]}
                )
                order = record_order_step(
                    self._order_repo, order.id, sale_step(variant_id), self._max_attempts
                )
        except DomainException:
            logger.error(
                "sale_confirmation_failed",
                order_id=order.id,
                location_id=order.location_id,
                completed_steps=list(order.completed_steps),
            )
            raise
        finally:
            self._publisher.publish(events)

        logger.info("order_shipped", order_id=order.id)
        return order_to_dto(order)

    def _ship(self, order_id: str) -> tuple[Order, list[DomainEvent]]:
        order = load_order(self._order_repo, order_id)
        events = order.ship()
        self._order_repo.save(order)
        return order, events
