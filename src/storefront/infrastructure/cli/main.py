import click

from storefront.infrastructure.bootstrap import settings
from storefront.infrastructure.cli.inventory_commands import inventory_restock, inventory_show
from storefront.infrastructure.cli.maintenance_commands import (
    maintenance_expire,
    maintenance_recover,
)
from storefront.infrastructure.cli.order_commands import (
    order_cancel,
    order_complete,
    order_create,
    order_delete,
    order_deliver,
    order_list,
    order_refund,
    order_restore,
    order_return,
    order_ship,
    order_show,
)
from storefront.infrastructure.cli.payment_commands import payment_callback, payment_start
from storefront.infrastructure.cli.product_commands import (
    product_add,
    product_list,
    product_publish,
    product_unpublish,
    product_update,
)
from storefront.logging_setup import configure_logging


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging.")
def cli(verbose: bool) -> None:
    """Storefront: orders, stock and payments."""
    configure_logging("DEBUG" if verbose else settings().log_level)


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def inventory() -> None:
    """Manage stock."""


@cli.group()
def payment() -> None:
    """Start payments and apply gateway callbacks."""


@cli.group()
def maintenance() -> None:
    """Housekeeping jobs (run periodically)."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_complete)
order.add_command(order_create)
order.add_command(order_delete)
order.add_command(order_deliver)
order.add_command(order_list)
order.add_command(order_refund)
order.add_command(order_restore)
order.add_command(order_return)
order.add_command(order_ship)
order.add_command(order_show)
product.add_command(product_add)
product.add_command(product_list)
product.add_command(product_publish)
product.add_command(product_unpublish)
product.add_command(product_update)
inventory.add_command(inventory_restock)
inventory.add_command(inventory_show)
payment.add_command(payment_start)
payment.add_command(payment_callback)
maintenance.add_command(maintenance_expire)
maintenance.add_command(maintenance_recover)
