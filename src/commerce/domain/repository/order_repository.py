"""Abstract repository for the Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from commerce.domain.model.order import Order, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def get_by_order_number(self, order_number: str) -> Order | None:
        """Return an order by its human-readable number, or None."""

    @abstractmethod
    def list_by_user(self, user_id: str, status: OrderStatus | None = None) -> list[Order]:
        """Return a user's orders, optionally filtered by status."""

    @abstractmethod
    @abstractmethod
    def list_by_coupon(self, code: str) -> list[Order]:
        """Return every order placed with the given coupon code."""

    def save(self, order: Order) -> int:
        """Persist a new or updated order and return the stored version."""
