"""CLI commands for refund transactions."""

from __future__ import annotations

import click

from commerce.application.refund_payment import RefundPaymentHandler
from commerce.domain.exceptions import DomainException
from commerce.infrastructure.bootstrap import (
    event_publisher,
    payment_repository,
    refund_repository,
    retry_attempts,
)


def _handler() -> RefundPaymentHandler:
    return RefundPaymentHandler(
        payment_repo=payment_repository(),
        refund_repo=refund_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )


@click.command("create")
@click.option("--payment", "payment_id", required=True, help="Payment ID.")
@click.option("--amount", default=None, help="Refund amount (default: full payment).")
def refund_create(payment_id: str, amount: str | None) -> None:
    """Refund a completed payment."""
    try:
        dto = _handler().initiate(payment_id, amount)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Refund {dto.id} {dto.status}: {dto.refund_amount}")


@click.command("complete")
@click.option("--id", "refund_id", required=True, help="Refund ID.")
@click.option("--gateway-refund", required=True, help="Gateway refund ID.")
def refund_complete(refund_id: str, gateway_refund: str) -> None:
    """Record the gateway's refund confirmation."""
    try:
        dto = _handler().complete(refund_id, gateway_refund)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Refund {dto.id} is {dto.status}.")


@click.command("fail")
@click.option("--id", "refund_id", required=True, help="Refund ID.")
def refund_fail(refund_id: str) -> None:
    """Record a refund the gateway rejected."""
    try:
        dto = _handler().fail(refund_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Refund {dto.id} is {dto.status}.")


@click.command("list")
@click.option("--payment", "payment_id", required=True, help="Payment ID.")
def refund_list(payment_id: str) -> None:
    """List refunds issued against a payment."""
    try:
        refunds = _handler().list_for_payment(payment_id)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    if not refunds:
        click.echo("No refunds found.")
        return

    for dto in refunds:
        click.echo(f"{dto.id}  {dto.status:<10} {dto.refund_amount:>22}")
