"""Application service: Show Order use case (query)."""

from __future__ import annotations

from commerce.application.dto import OrderDTO, order_to_dto
from commerce.domain.exceptions import EntityNotFoundError
from commerce.domain.repository.order_repository import OrderRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_ref: str) -> OrderDTO:
        """Look an order up by ID or by its ``ORD-...`` number."""
        order = self._order_repo.get_by_id(order_ref)
        if order is None:
            order = self._order_repo.get_by_order_number(order_ref)
        if order is None:
            raise EntityNotFoundError(f"Order {order_ref} not found")
        return order_to_dto(order)

    def list_for_user(self, user_id: str) -> list[OrderDTO]:
        return [order_to_dto(o) for o in self._order_repo.list_by_user(user_id)]
