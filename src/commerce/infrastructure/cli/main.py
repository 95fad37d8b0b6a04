import click

from commerce.infrastructure.cli.coupon_commands import (
    coupon_activate,
    coupon_apply,
    coupon_create,
    coupon_deactivate,
    coupon_delete,
    coupon_list,
    coupon_set_limit,
    coupon_set_period,
    coupon_show,
)
from commerce.infrastructure.cli.order_commands import (
    order_cancel,
    order_checkout,
    order_confirm,
    order_deliver,
    order_list,
    order_process,
    order_refund,
    order_ship,
    order_show,
)
from commerce.infrastructure.cli.payment_commands import (
    payment_cancel,
    payment_complete,
    payment_create,
    payment_fail,
    payment_list,
    payment_show,
    payment_start,
)
from commerce.infrastructure.cli.refund_commands import (
    refund_complete,
    refund_create,
    refund_fail,
    refund_list,
)
from commerce.infrastructure.cli.stock_commands import (
    stock_receive,
    stock_remove,
    stock_show,
    stock_threshold,
)
from commerce.infrastructure.logging_config import configure_logging
from commerce.infrastructure.settings import get_settings


@click.group()
def cli() -> None:
    """Commerce — stock, orders, payments and coupons"""
    configure_logging(get_settings())


@cli.group()
def stock() -> None:
    """Manage the stock ledger."""


@cli.group()
def coupon() -> None:
    """Manage coupons."""


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def payment() -> None:
    """Manage payments."""


@cli.group()
def refund() -> None:
    """Manage refunds."""


# Register subcommands
stock.add_command(stock_receive)
stock.add_command(stock_remove)
stock.add_command(stock_show)
stock.add_command(stock_threshold)
coupon.add_command(coupon_activate)
coupon.add_command(coupon_apply)
coupon.add_command(coupon_create)
coupon.add_command(coupon_deactivate)
coupon.add_command(coupon_delete)
coupon.add_command(coupon_list)
coupon.add_command(coupon_set_limit)
coupon.add_command(coupon_set_period)
coupon.add_command(coupon_show)
order.add_command(order_cancel)
order.add_command(order_checkout)
order.add_command(order_confirm)
order.add_command(order_deliver)
order.add_command(order_list)
order.add_command(order_process)
order.add_command(order_refund)
order.add_command(order_ship)
order.add_command(order_show)
payment.add_command(payment_cancel)
payment.add_command(payment_complete)
payment.add_command(payment_create)
payment.add_command(payment_fail)
payment.add_command(payment_list)
payment.add_command(payment_show)
payment.add_command(payment_start)
refund.add_command(refund_complete)
refund.add_command(refund_create)
refund.add_command(refund_fail)
refund.add_command(refund_list)
