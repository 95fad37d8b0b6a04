"""CLI commands for the stock ledger."""

from __future__ import annotations

import click

from commerce.application.adjust_stock import (
    ReceiveStockHandler,
    RemoveStockHandler,
    SetLowStockThresholdHandler,
)
from commerce.application.dto import StockLineDTO
from commerce.application.show_stock import ShowStockHandler
from commerce.domain.exceptions import DomainException
from commerce.infrastructure.bootstrap import (
    default_low_stock_threshold,
    event_publisher,
    retry_attempts,
    stock_repository,
)

_location_option = click.option("--location", "location_id", required=True, help="Location ID.")
_variant_option = click.option("--variant", "variant_id", required=True, help="Variant ID.")


def _display_line(dto: StockLineDTO) -> None:
    flag = "  LOW" if dto.is_low_stock else ""
    click.echo(
        f"{dto.location_id}/{dto.variant_id}: on hand {dto.on_hand}, "
        f"reserved {dto.reserved}, available {dto.available}{flag}"
    )


@click.command("receive")
@_location_option
@_variant_option
@click.option("--qty", required=True, type=int, help="Units received.")
def stock_receive(location_id: str, variant_id: str, qty: int) -> None:
    """Receive units into stock (opens the entry if needed)."""
    handler = ReceiveStockHandler(
        stock_repo=stock_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
        default_threshold=default_low_stock_threshold(),
    )

    try:
        dto = handler.handle(location_id, variant_id, qty)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    _display_line(dto)


@click.command("remove")
@_location_option
@_variant_option
@click.option("--qty", required=True, type=int, help="Units to write off.")
def stock_remove(location_id: str, variant_id: str, qty: int) -> None:
    """Write off on-hand units (damage, shrinkage, transfer out)."""
    handler = RemoveStockHandler(
        stock_repo=stock_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        dto = handler.handle(location_id, variant_id, qty)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    _display_line(dto)


@click.command("threshold")
@_location_option
@_variant_option
@click.option("--threshold", required=True, type=int, help="New low-stock threshold.")
def stock_threshold(location_id: str, variant_id: str, threshold: int) -> None:
    """Change the low-stock threshold of an entry."""
    handler = SetLowStockThresholdHandler(
        stock_repo=stock_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        dto = handler.handle(location_id, variant_id, threshold)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Threshold for {dto.location_id}/{dto.variant_id} set to {dto.threshold}.")


@click.command("show")
@click.option("--location", "location_id", default=None, help="Only this location.")
@click.option("--low", "low_only", is_flag=True, default=False, help="Only low-stock entries.")
def stock_show(location_id: str | None, low_only: bool) -> None:
    """Display stock levels."""
    handler = ShowStockHandler(stock_repo=stock_repository())
    lines = handler.handle(location_id=location_id, low_stock_only=low_only)

    if not lines:
        click.echo("No stock entries found.")
        return

    click.echo(
        f"{'Location':<12} {'Variant':<16} {'On hand':>8} {'Reserved':>9} "
        f"{'Available':>10} {'Low':>4}"
    )
    click.echo("-" * 63)
    for line in lines:
        low = "yes" if line.is_low_stock else ""
        click.echo(
            f"{line.location_id:<12} {line.variant_id:<16} {line.on_hand:>8} "
            f"{line.reserved:>9} {line.available:>10} {low:>4}"
        )
