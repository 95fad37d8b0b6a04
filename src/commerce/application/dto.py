"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.  Money values travel as
formatted strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from commerce.domain.model.coupon import Coupon
from commerce.domain.model.order import Order
from commerce.domain.model.payment import Payment
from commerce.domain.model.refund import RefundTransaction
from commerce.domain.model.stock import StockEntry
from commerce.domain.model.value_objects import Address

_TIMESTAMP = "%Y-%m-%d %H:%M UTC"


# --- Inputs ------------------------------------------------------------------


@dataclass(frozen=True)
class CheckoutItemSpec:
    """Input: one cart line, with the price the customer saw."""

    variant_id: str
    quantity: int
    unit_price: str
    sku: str | None = None
    product_name: str | None = None
    variant_name: str = ""


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str
    location_id: str
    items: list[CheckoutItemSpec]
    payment_method: str = "cod"
    shipping_total: str = "0"
    tax_total: str = "0"
    coupon_code: str | None = None
    shipping_address: Address | None = None
    billing_address: Address | None = None


# --- Outputs -----------------------------------------------------------------


@dataclass(frozen=True)
class OrderItemDTO:
    sku: str
    variant_id: str
    product_name: str
    variant_name: str
    quantity: int
    unit_price: str
    total_price: str


@dataclass(frozen=True)
class OrderDTO:
    id: str
    order_number: str
    user_id: str
    location_id: str
    status: str
    items: list[OrderItemDTO]
    subtotal: str
    shipping_total: str
    tax_total: str
    discount_total: str
    grand_total: str
    coupon_code: str | None
    cancel_reason: str | None
    created_at: str


@dataclass(frozen=True)
class PaymentTransactionDTO:
    id: str
    status: str
    gateway_transaction_id: str | None
    gateway_response_code: str | None
    performed_at: str


@dataclass(frozen=True)
class PaymentDTO:
    id: str
    order_id: str
    amount: str
    method: str
    status: str
    transactions: list[PaymentTransactionDTO] = field(default_factory=list)


@dataclass(frozen=True)
class RefundDTO:
    id: str
    payment_id: str
    payment_transaction_id: str
    refund_amount: str
    status: str
    gateway_refund_id: str | None


@dataclass(frozen=True)
class CheckoutResultDTO:
    order: OrderDTO
    payment: PaymentDTO | None
    discount: str


@dataclass(frozen=True)
class CouponDTO:
    code: str
    discount_type: str
    discount_value: str
    max_discount_amount: str | None
    min_order_value: str
    max_usage_limit: int | None
    usage_count: int
    remaining_usage: int | None
    start_date: str | None
    end_date: str | None
    is_active: bool


@dataclass(frozen=True)
class CouponApplicationDTO:
    code: str
    order_value: str
    discount: str
    final_total: str
    usage_count: int


@dataclass(frozen=True)
class StockLineDTO:
    location_id: str
    variant_id: str
    on_hand: int
    reserved: int
    available: int
    threshold: int
    is_low_stock: bool


# --- Mapping -----------------------------------------------------------------


def order_to_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,
        order_number=order.order_number.value,
        user_id=order.user_id,
        location_id=order.location_id,
        status=order.status.value,
        items=[
            OrderItemDTO(
                sku=item.sku,
                variant_id=item.variant_id,
                product_name=item.product_name,
                variant_name=item.variant_name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                total_price=str(item.total_price),
            )
            for item in order.items
        ],
        subtotal=str(order.subtotal),
        shipping_total=str(order.shipping_total),
        tax_total=str(order.tax_total),
        discount_total=str(order.discount_total),
        grand_total=str(order.grand_total),
        coupon_code=order.coupon_code,
        cancel_reason=order.cancel_reason,
        created_at=order.created_at.strftime(_TIMESTAMP),
    )


def payment_to_dto(payment: Payment) -> PaymentDTO:
    return PaymentDTO(
        id=payment.id,
        order_id=payment.order_id,
        amount=str(payment.amount),
        method=payment.method.value,
        status=payment.status.value,
        transactions=[
            PaymentTransactionDTO(
                id=txn.id,
                status=txn.status.value,
                gateway_transaction_id=txn.gateway_transaction_id,
                gateway_response_code=txn.gateway_response_code,
                performed_at=txn.performed_at.strftime(_TIMESTAMP),
            )
            for txn in payment.transactions
        ],
    )


def refund_to_dto(refund: RefundTransaction) -> RefundDTO:
    return RefundDTO(
        id=refund.id,
        payment_id=refund.payment_id,
        payment_transaction_id=refund.payment_transaction_id,
        refund_amount=str(refund.refund_amount),
        status=refund.status.value,
        gateway_refund_id=refund.gateway_refund_id,
    )


def coupon_to_dto(coupon: Coupon) -> CouponDTO:
    return CouponDTO(
        code=coupon.code,
        discount_type=coupon.discount_type.value,
        discount_value=str(coupon.discount_value),
        max_discount_amount=(
            str(coupon.max_discount_amount) if coupon.max_discount_amount else None
        ),
        min_order_value=str(coupon.min_order_value),
        max_usage_limit=coupon.max_usage_limit,
        usage_count=coupon.usage_count,
        remaining_usage=coupon.remaining_usage,
        start_date=coupon.start_date.strftime(_TIMESTAMP) if coupon.start_date else None,
        end_date=coupon.end_date.strftime(_TIMESTAMP) if coupon.end_date else None,
        is_active=coupon.is_active,
    )


def stock_to_dto(entry: StockEntry) -> StockLineDTO:
    return StockLineDTO(
        location_id=entry.location_id,
        variant_id=entry.variant_id,
        on_hand=entry.quantity_on_hand,
        reserved=entry.quantity_reserved,
        available=entry.available_quantity,
        threshold=entry.low_stock_threshold,
        is_low_stock=entry.is_low_stock,
    )
