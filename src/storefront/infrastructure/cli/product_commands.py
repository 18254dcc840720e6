"""CLI commands for the Product aggregate."""

from __future__ import annotations

import click

from storefront.application.add_product import AddProductHandler
from storefront.application.update_product import PublishProductHandler, UpdateProductHandler
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import product_repository, settings
from storefront.infrastructure.cli.errors import to_click


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--stock", default=0, type=int, show_default=True, help="Opening stock.")
@click.option("--code", default="", help="Product code / SKU.")
@click.option("--draft", is_flag=True, default=False, help="Create unpublished.")
def product_add(name: str, price: str, stock: int, code: str, draft: bool) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(
        product_repo=product_repository(),
        low_stock_threshold=settings().low_stock_threshold,
    )

    try:
        product = handler.handle(name=name, price=price, stock=stock, code=code, draft=draft)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(
        f"Product #{product.id} '{product.name}' added at {product.price} "
        f"({product.available_stock} in stock, {product.status.value})"
    )


@click.command("list")
def product_list() -> None:
    """List all products in the catalog."""
    repo = product_repository()
    products = repo.list_all()

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Price':>10} {'Status':>14}")
    click.echo("-" * 53)
    for p in products:
        click.echo(f"{p.id:<6} {p.name:<20} {str(p.price):>10} {p.status.value:>14}")


@click.command("update")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--price", required=True, help="New price (e.g. 29.99).")
def product_update(product_id: str, price: str) -> None:
    """Update a product's price."""
    handler = UpdateProductHandler(
        product_repo=product_repository(),
        retry_attempts=settings().stock_retry_attempts,
    )

    try:
        handler.handle(product_id=product_id, new_price=price)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Product #{product_id} price updated to ${price}")


def _set_published(product_id: str, publish: bool) -> None:
    handler = PublishProductHandler(
        product_repo=product_repository(),
        retry_attempts=settings().stock_retry_attempts,
    )

    try:
        product = handler.handle(product_id=product_id, publish=publish)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Product #{product_id} is now {product.status.value}")


@click.command("publish")
@click.option("--id", "product_id", required=True, help="Product ID.")
def product_publish(product_id: str) -> None:
    """Put a draft or inactive product on sale."""
    _set_published(product_id, publish=True)


@click.command("unpublish")
@click.option("--id", "product_id", required=True, help="Product ID.")
def product_unpublish(product_id: str) -> None:
    """Take a product off sale."""
    _set_published(product_id, publish=False)
