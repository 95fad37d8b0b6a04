"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from commerce.application.cancel_order import CancelOrderHandler
from commerce.application.checkout import CheckoutHandler
from commerce.application.dto import CheckoutItemSpec, CheckoutRequest, OrderDTO
from commerce.application.order_lifecycle import (
    ConfirmOrderHandler,
    DeliverOrderHandler,
    ProcessOrderHandler,
)
from commerce.application.refund_payment import RefundOrderHandler
from commerce.application.ship_order import ShipOrderHandler
from commerce.application.show_order import ShowOrderHandler
from commerce.domain.exceptions import DomainException
from commerce.infrastructure.bootstrap import (
    coupon_repository,
    event_publisher,
    order_repository,
    payment_repository,
    refund_repository,
    retry_attempts,
    stock_repository,
)

_id_option = click.option("--id", "order_id", required=True, help="Order ID.")


def _parse_items(raw: str) -> list[CheckoutItemSpec]:
    """Parse 'SKU-1:2:150000,SKU-2:1:90000' into CheckoutItemSpec list."""
    specs: list[CheckoutItemSpec] = []
    for part in raw.split(","):
        part = part.strip()
        fields = part.split(":")
        if len(fields) != 3:
            raise click.BadParameter(
                f"Invalid item format '{part}'. Expected 'Variant:Quantity:UnitPrice'."
            )
        variant_id, qty_str, price = (f.strip() for f in fields)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for variant '{variant_id}'."
            )
        specs.append(CheckoutItemSpec(variant_id=variant_id, quantity=qty, unit_price=price))
    return specs


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.order_number}  (status={dto.status})")
    click.echo(f"ID:       {dto.id}")
    click.echo(f"User:     {dto.user_id}  Location: {dto.location_id}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.cancel_reason:
        click.echo(f"Reason:   {dto.cancel_reason}")
    click.echo()
    click.echo(f"  {'Variant':<16} {'Qty':>5} {'Price':>20} {'Total':>20}")
    click.echo(f"  {'-'*64}")
    for item in dto.items:
        click.echo(
            f"  {item.variant_id:<16} {item.quantity:>5} "
            f"{item.unit_price:>20} {item.total_price:>20}"
        )
    click.echo(f"  {'-'*64}")
    click.echo(f"  {'Subtotal':<22} {dto.subtotal:>42}")
    click.echo(f"  {'Shipping':<22} {dto.shipping_total:>42}")
    click.echo(f"  {'Tax':<22} {dto.tax_total:>42}")
    coupon = f" ({dto.coupon_code})" if dto.coupon_code else ""
    click.echo(f"  {('Discount' + coupon):<22} {dto.discount_total:>42}")
    click.echo(f"  {'Grand total':<22} {dto.grand_total:>42}")


@click.command("checkout")
@click.option("--user", "user_id", required=True, help="Customer user ID.")
@click.option("--location", "location_id", required=True, help="Fulfilment location ID.")
@click.option("--items", required=True, help="Items as 'Variant:Qty:Price,...'.")
@click.option("--payment-method", default="cod", show_default=True, help="Payment method.")
@click.option("--shipping", default="0", help="Shipping total.")
@click.option("--tax", default="0", help="Tax total.")
@click.option("--coupon", "coupon_code", default=None, help="Coupon code to apply.")
def order_checkout(
    user_id: str,
    location_id: str,
    items: str,
    payment_method: str,
    shipping: str,
    tax: str,
    coupon_code: str | None,
) -> None:
    """Place an order: reserve stock, apply a coupon, open the payment."""
    request = CheckoutRequest(
        user_id=user_id,
        location_id=location_id,
        items=_parse_items(items),
        payment_method=payment_method,
        shipping_total=shipping,
        tax_total=tax,
        coupon_code=coupon_code,
    )
    handler = CheckoutHandler(
        order_repo=order_repository(),
        stock_repo=stock_repository(),
        coupon_repo=coupon_repository(),
        payment_repo=payment_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        result = handler.handle(request)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    _display_order(result.order)
    click.echo()
    if result.payment is not None:
        click.echo(
            f"Payment {result.payment.id} ({result.payment.method}) "
            f"{result.payment.status}: {result.payment.amount}"
        )
    else:
        click.echo("Nothing to pay.")


@click.command("show")
@click.option("--id", "order_ref", required=True, help="Order ID or order number.")
def order_show(order_ref: str) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_ref)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    _display_order(dto)


@click.command("list")
@click.option("--user", "user_id", required=True, help="Customer user ID.")
def order_list(user_id: str) -> None:
    """List a customer's orders."""
    orders = ShowOrderHandler(order_repo=order_repository()).list_for_user(user_id)

    if not orders:
        click.echo("No orders found.")
        return

    for dto in orders:
        click.echo(f"{dto.order_number}  {dto.status:<10} {dto.grand_total:>24}  {dto.id}")


def _transition(handler_cls, order_id: str) -> OrderDTO:
    handler = handler_cls(
        order_repo=order_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )
    try:
        return handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")


@click.command("confirm")
@_id_option
def order_confirm(order_id: str) -> None:
    """Confirm a pending order."""
    dto = _transition(ConfirmOrderHandler, order_id)
    click.echo(f"Order {dto.order_number} confirmed.")


@click.command("process")
@_id_option
def order_process(order_id: str) -> None:
    """Start preparing a confirmed order."""
    dto = _transition(ProcessOrderHandler, order_id)
    click.echo(f"Order {dto.order_number} is processing.")


@click.command("deliver")
@_id_option
def order_deliver(order_id: str) -> None:
    """Mark a shipped order as delivered."""
    dto = _transition(DeliverOrderHandler, order_id)
    click.echo(f"Order {dto.order_number} delivered.")


@click.command("ship")
@_id_option
def order_ship(order_id: str) -> None:
    """Ship an order (reserved stock becomes a sale)."""
    handler = ShipOrderHandler(
        order_repo=order_repository(),
        stock_repo=stock_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Order {dto.order_number} shipped.")


@click.command("cancel")
@_id_option
@click.option("--reason", required=True, help="Why the order is cancelled.")
def order_cancel(order_id: str, reason: str) -> None:
    """Cancel an order (releases stock, returns the coupon, settles payment)."""
    handler = CancelOrderHandler(
        order_repo=order_repository(),
        stock_repo=stock_repository(),
        coupon_repo=coupon_repository(),
        payment_repo=payment_repository(),
        refund_repo=refund_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        dto = handler.handle(order_id, reason)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Order {dto.order_number} cancelled.")


@click.command("refund")
@_id_option
def order_refund(order_id: str) -> None:
    """Refund a delivered order in full."""
    handler = RefundOrderHandler(
        order_repo=order_repository(),
        payment_repo=payment_repository(),
        refund_repo=refund_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        dto, refund = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Order {dto.order_number} refunded.")
    if refund is not None:
        click.echo(f"Refund {refund.id} {refund.status}: {refund.refund_amount}")
