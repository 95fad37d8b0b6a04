"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

from dataclasses import asdict

from commerce.domain.model.coupon import normalize_code
from commerce.domain.model.order import Order, OrderItem, OrderStatus
from commerce.domain.model.value_objects import Address, OrderNumber, Quantity
from commerce.domain.repository.order_repository import OrderRepository
from commerce.infrastructure.persistence.json_file import (
    JsonFileRepository,
    datetime_from_raw,
    datetime_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonOrderRepository(JsonFileRepository, OrderRepository):

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: str) -> Order | None:
        raw = self._find(lambda r: r["id"] == order_id)
        return self._to_domain(raw) if raw is not None else None

    def get_by_order_number(self, order_number: str) -> Order | None:
        raw = self._find(lambda r: r["order_number"] == order_number)
        return self._to_domain(raw) if raw is not None else None

    def list_by_user(self, user_id: str, status: OrderStatus | None = None) -> list[Order]:
        return [
            self._to_domain(raw)
            for raw in self._filter(
                lambda r: r["user_id"] == user_id
                and (status is None or r["status"] == status.value)
            )
        ]

    def list_by_coupon(self, code: str) -> list[Order]:
        wanted = normalize_code(code)
        return [
            self._to_domain(raw)
            for raw in self._filter(lambda r: r.get("coupon_code") == wanted)
        ]

    def save(self, order: Order) -> int:
        return self._upsert(("id",), order, self._to_raw(order))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        return {
            "id": order.id,
            "order_number": order.order_number.value,
            "user_id": order.user_id,
            "location_id": order.location_id,
            "status": order.status.value,
            "items": [
                {
                    "sku": item.sku,
                    "variant_id": item.variant_id,
                    "product_name": item.product_name,
                    "variant_name": item.variant_name,
                    "quantity": item.quantity.value,
                    "unit_price": money_to_raw(item.unit_price),
                    "image_url": item.image_url,
                }
                for item in order.items
            ],
            "subtotal": money_to_raw(order.subtotal),
            "shipping_total": money_to_raw(order.shipping_total),
            "tax_total": money_to_raw(order.tax_total),
            "discount_total": money_to_raw(order.discount_total),
            "grand_total": money_to_raw(order.grand_total),
            "shipping_address": (
                asdict(order.shipping_address) if order.shipping_address else None
            ),
            "billing_address": (
                asdict(order.billing_address) if order.billing_address else None
            ),
            "coupon_code": order.coupon_code,
            "cancel_reason": order.cancel_reason,
            "completed_steps": list(order.completed_steps),
            "created_at": datetime_to_raw(order.created_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        items = tuple(
            OrderItem(
                sku=i["sku"],
                variant_id=i["variant_id"],
                product_name=i["product_name"],
                variant_name=i["variant_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=money_from_raw(i["unit_price"]),
                image_url=i.get("image_url"),
            )
            for i in raw["items"]
        )
        shipping = raw.get("shipping_address")
        billing = raw.get("billing_address")
        return Order(
            id=raw["id"],
            order_number=OrderNumber(raw["order_number"]),
            user_id=raw["user_id"],
            location_id=raw["location_id"],
            items=items,
            subtotal=money_from_raw(raw["subtotal"]),
            shipping_total=money_from_raw(raw["shipping_total"]),
            tax_total=money_from_raw(raw["tax_total"]),
            discount_total=money_from_raw(raw["discount_total"]),
            grand_total=money_from_raw(raw["grand_total"]),
            shipping_address=Address(**shipping) if shipping else None,
            billing_address=Address(**billing) if billing else None,
            coupon_code=raw.get("coupon_code"),
            status=OrderStatus(raw["status"]),
            cancel_reason=raw.get("cancel_reason"),
            completed_steps=tuple(raw.get("completed_steps", ())),
            version=raw["version"],
            created_at=datetime_from_raw(raw["created_at"]),
            persisted_version=raw["version"],
        )
