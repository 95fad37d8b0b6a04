"""CLI commands for the Payment aggregate."""

from __future__ import annotations

import click

from commerce.application.create_payment import CreatePaymentHandler
from commerce.application.dto import PaymentDTO
from commerce.application.process_payment import ProcessPaymentHandler
from commerce.application.show_payment import ShowPaymentHandler
from commerce.domain.exceptions import DomainException
from commerce.infrastructure.bootstrap import (
    event_publisher,
    order_repository,
    payment_repository,
    refund_repository,
    retry_attempts,
)

_id_option = click.option("--id", "payment_id", required=True, help="Payment ID.")


def _display_payment(dto: PaymentDTO) -> None:
    click.echo(f"Payment {dto.id}  (status={dto.status})")
    click.echo(f"Order:   {dto.order_id}")
    click.echo(f"Method:  {dto.method}")
    click.echo(f"Amount:  {dto.amount}")
    for txn in dto.transactions:
        click.echo(
            f"  {txn.performed_at}  {txn.status:<10} "
            f"gateway={txn.gateway_transaction_id or '-'} code={txn.gateway_response_code or '-'}"
        )


def _processor() -> ProcessPaymentHandler:
    return ProcessPaymentHandler(
        payment_repo=payment_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )


@click.command("create")
@click.option("--order", "order_id", required=True, help="Order ID.")
@click.option("--method", required=True, help="Payment method (cod, vnpay, momo, ...).")
def payment_create(order_id: str, method: str) -> None:
    """Open a new payment attempt for an order."""
    handler = CreatePaymentHandler(
        order_repo=order_repository(),
        payment_repo=payment_repository(),
    )

    try:
        dto = handler.handle(order_id, method)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Payment {dto.id} created: {dto.amount} via {dto.method}.")


@click.command("start")
@_id_option
def payment_start(payment_id: str) -> None:
    """Hand a pending payment to the gateway."""
    try:
        dto = _processor().start(payment_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Payment {dto.id} is {dto.status}.")


@click.command("complete")
@_id_option
@click.option("--gateway-tx", required=True, help="Gateway transaction ID.")
@click.option("--code", "response_code", default="00", show_default=True, help="Gateway response code.")
def payment_complete(payment_id: str, gateway_tx: str, response_code: str) -> None:
    """Record a successful gateway callback."""
    try:
        dto = _processor().complete(payment_id, gateway_tx, response_code)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Payment {dto.id} is {dto.status}.")


@click.command("fail")
@_id_option
@click.option("--code", "response_code", required=True, help="Gateway response code.")
@click.option("--raw", "raw_response", default=None, help="Raw gateway response.")
def payment_fail(payment_id: str, response_code: str, raw_response: str | None) -> None:
    """Record a failed gateway callback."""
    try:
        dto = _processor().fail(payment_id, response_code, raw_response)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Payment {dto.id} is {dto.status}.")


@click.command("cancel")
@_id_option
def payment_cancel(payment_id: str) -> None:
    """Cancel a payment that never reached the gateway."""
    try:
        dto = _processor().cancel(payment_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Payment {dto.id} is {dto.status}.")


@click.command("show")
@_id_option
def payment_show(payment_id: str) -> None:
    """Show a payment with its transactions and refunds."""
    handler = ShowPaymentHandler(
        payment_repo=payment_repository(),
        refund_repo=refund_repository(),
    )

    try:
        dto, refunds = handler.handle(payment_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    _display_payment(dto)
    for refund in refunds:
        click.echo(f"Refund {refund.id}  {refund.status:<10} {refund.refund_amount}")


@click.command("list")
@click.option("--order", "order_id", required=True, help="Order ID.")
def payment_list(order_id: str) -> None:
    """List the payment attempts of an order."""
    handler = ShowPaymentHandler(
        payment_repo=payment_repository(),
        refund_repo=refund_repository(),
    )
    payments = handler.list_for_order(order_id)

    if not payments:
        click.echo("No payments found.")
        return

    for dto in payments:
        click.echo(f"{dto.id}  {dto.method:<14} {dto.status:<10} {dto.amount:>22}")
