"""CLI commands for the Coupon aggregate."""

from __future__ import annotations

from datetime import datetime

import click

from commerce.application.apply_coupon import ApplyCouponHandler
from commerce.application.create_coupon import CreateCouponHandler
from commerce.application.delete_coupon import DeleteCouponHandler
from commerce.application.dto import CouponDTO
from commerce.application.show_coupon import ShowCouponHandler
from commerce.application.update_coupon import UpdateCouponHandler
from commerce.domain.exceptions import DomainException
from commerce.infrastructure.bootstrap import (
    coupon_repository,
    event_publisher,
    order_repository,
    retry_attempts,
)

_DATE = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"])
_code_option = click.option("--code", required=True, help="Coupon code.")


def _display_coupon(dto: CouponDTO) -> None:
    value = f"{dto.discount_value}%" if dto.discount_type == "PERCENTAGE" else dto.discount_value
    click.echo(f"Coupon {dto.code}  ({'active' if dto.is_active else 'inactive'})")
    click.echo(f"Discount:   {value} ({dto.discount_type})")
    if dto.max_discount_amount:
        click.echo(f"Max off:    {dto.max_discount_amount}")
    click.echo(f"Min order:  {dto.min_order_value}")
    limit = dto.max_usage_limit if dto.max_usage_limit is not None else "unlimited"
    click.echo(f"Usage:      {dto.usage_count} / {limit}")
    if dto.start_date or dto.end_date:
        click.echo(f"Valid:      {dto.start_date or '-'} .. {dto.end_date or '-'}")


@click.command("create")
@_code_option
@click.option(
    "--type",
    "discount_type",
    required=True,
    type=click.Choice(["PERCENTAGE", "FIXED_AMOUNT"], case_sensitive=False),
    help="Discount type.",
)
@click.option("--value", "discount_value", required=True, help="Percent or fixed amount.")
@click.option("--min-order", default=None, help="Minimum order value.")
@click.option("--max-discount", default=None, help="Cap for percentage discounts.")
@click.option("--limit", "usage_limit", type=int, default=None, help="Maximum redemptions.")
@click.option("--start", "start_date", type=_DATE, default=None, help="First valid day (UTC).")
@click.option("--end", "end_date", type=_DATE, default=None, help="Last valid moment (UTC).")
@click.option("--description", default=None, help="Free-text description.")
def coupon_create(
    code: str,
    discount_type: str,
    discount_value: str,
    min_order: str | None,
    max_discount: str | None,
    usage_limit: int | None,
    start_date: datetime | None,
    end_date: datetime | None,
    description: str | None,
) -> None:
    """Create a new coupon."""
    handler = CreateCouponHandler(coupon_repo=coupon_repository())

    try:
        dto = handler.handle(
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_value=min_order,
            max_discount_amount=max_discount,
            max_usage_limit=usage_limit,
            start_date=start_date,
            end_date=end_date,
            description=description,
        )
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Coupon {dto.code} created.")


@click.command("show")
@_code_option
def coupon_show(code: str) -> None:
    """Show a coupon."""
    handler = ShowCouponHandler(coupon_repo=coupon_repository())

    try:
        dto = handler.handle(code)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    _display_coupon(dto)


@click.command("list")
@click.option("--valid", "valid_only", is_flag=True, default=False, help="Only usable coupons.")
def coupon_list(valid_only: bool) -> None:
    """List coupons."""
    handler = ShowCouponHandler(coupon_repo=coupon_repository())
    coupons = handler.list(valid_only=valid_only)

    if not coupons:
        click.echo("No coupons found.")
        return

    click.echo(f"{'Code':<16} {'Type':<13} {'Value':>14} {'Used':>6} {'Active':>7}")
    click.echo("-" * 60)
    for c in coupons:
        click.echo(
            f"{c.code:<16} {c.discount_type:<13} {c.discount_value:>14} "
            f"{c.usage_count:>6} {'yes' if c.is_active else 'no':>7}"
        )


@click.command("apply")
@_code_option
@click.option("--order-value", required=True, help="Order value to discount.")
@click.option("--record", is_flag=True, default=False, help="Count this as a redemption.")
def coupon_apply(code: str, order_value: str, record: bool) -> None:
    """Compute a coupon's discount for an order value."""
    handler = ApplyCouponHandler(
        coupon_repo=coupon_repository(),
        publisher=event_publisher(),
        max_attempts=retry_attempts(),
    )

    try:
        dto = handler.handle(code, order_value) if record else handler.quote(code, order_value)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Order value: {dto.order_value}")
    click.echo(f"Discount:    {dto.discount}")
    click.echo(f"Total:       {dto.final_total}")


def _update_handler() -> UpdateCouponHandler:
    return UpdateCouponHandler(coupon_repo=coupon_repository(), max_attempts=retry_attempts())


@click.command("activate")
@_code_option
def coupon_activate(code: str) -> None:
    """Activate a coupon."""
    try:
        dto = _update_handler().activate(code)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Coupon {dto.code} activated.")


@click.command("deactivate")
@_code_option
def coupon_deactivate(code: str) -> None:
    """Deactivate a coupon."""
    try:
        dto = _update_handler().deactivate(code)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Coupon {dto.code} deactivated.")


@click.command("set-limit")
@_code_option
@click.option("--limit", "usage_limit", type=int, default=None, help="Omit for unlimited.")
def coupon_set_limit(code: str, usage_limit: int | None) -> None:
    """Change a coupon's redemption limit."""
    try:
        dto = _update_handler().update_usage_limit(code, usage_limit)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    limit = dto.max_usage_limit if dto.max_usage_limit is not None else "unlimited"
    click.echo(f"Coupon {dto.code} usage limit set to {limit}.")


@click.command("set-period")
@_code_option
@click.option("--start", "start_date", type=_DATE, default=None, help="First valid day (UTC).")
@click.option("--end", "end_date", type=_DATE, default=None, help="Last valid moment (UTC).")
def coupon_set_period(
    code: str, start_date: datetime | None, end_date: datetime | None
) -> None:
    """Change a coupon's validity period."""
    try:
        dto = _update_handler().update_validity_period(code, start_date, end_date)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Coupon {dto.code} valid {dto.start_date or '-'} .. {dto.end_date or '-'}.")


@click.command("delete")
@_code_option
def coupon_delete(code: str) -> None:
    """Delete a coupon no open order depends on."""
    handler = DeleteCouponHandler(coupon_repo=coupon_repository(), order_repo=order_repository())
    try:
        handler.handle(code)
    except DomainException as exc:
        raise click.ClickException(f"[{exc.code}] {exc}")

    click.echo(f"Coupon {code.strip().upper()} deleted.")
