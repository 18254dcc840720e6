"""CLI commands for stock management."""

from __future__ import annotations

import click

from storefront.application.restock_product import RestockProductHandler
from storefront.application.show_inventory import ShowInventoryHandler
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import product_repository, settings
from storefront.infrastructure.cli.errors import to_click


@click.command("restock")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="Units received.")
def inventory_restock(product_id: str, quantity: int) -> None:
    """Receive new stock for a product."""
    handler = RestockProductHandler(
        product_repo=product_repository(),
        retry_attempts=settings().stock_retry_attempts,
    )

    try:
        product = handler.handle(product_id=product_id, quantity=quantity)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(
        f"Restocked '{product.name}' by {quantity} (available {product.available_stock})"
    )


@click.command("show")
@click.option("--low", "low_only", is_flag=True, default=False, help="Only low-stock products.")
def inventory_show(low_only: bool) -> None:
    """Show current stock levels."""
    handler = ShowInventoryHandler(product_repo=product_repository())
    lines = handler.handle(low_stock_only=low_only)

    if not lines:
        click.echo("No products found.")
        return

    click.echo(
        f"{'Product':<20} {'Total':>8} {'Available':>10} {'Reserved':>10} {'Sold':>8}"
    )
    click.echo("-" * 60)
    for line in lines:
        flag = "  LOW" if line.low_stock else ""
        click.echo(
            f"{line.product_name:<20} {line.total:>8} {line.available:>10} "
            f"{line.reserved:>10} {line.sold:>8}{flag}"
        )
