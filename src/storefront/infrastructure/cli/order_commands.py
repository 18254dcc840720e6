"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from storefront.application.cancel_order import CancelOrderHandler
from storefront.application.create_order import CreateOrderHandler
from storefront.application.delete_order import DeleteOrderHandler, RestoreOrderHandler
from storefront.application.deliver_order import CompleteOrderHandler, ConfirmDeliveryHandler
from storefront.application.dto import CreateOrderCommand, OrderDTO, OrderItemSpec
from storefront.application.refund_order import RefundOrderHandler
from storefront.application.return_order import ReturnOrderHandler
from storefront.application.ship_order import ShipOrderHandler
from storefront.application.show_order import ListOrdersHandler, ShowOrderHandler
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import (
    compensation_journal,
    lock_manager,
    order_number_generator,
    order_repository,
    payment_gateway,
    payment_repository,
    product_repository,
    settings,
)
from storefront.infrastructure.cli.errors import to_click


def _split_pairs(raw: str) -> list[tuple[str, str]]:
    """Split 'a:1,b:2' into [('a', '1'), ('b', '2')]."""
    pairs: list[tuple[str, str]] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductID:Quantity'."
            )
        key, value = pair.rsplit(":", 1)
        pairs.append((key.strip(), value.strip()))
    return pairs


def _to_int(qty_str: str, product_id: str) -> int:
    try:
        return int(qty_str)
    except ValueError:
        raise click.BadParameter(
            f"Invalid quantity '{qty_str}' for product '{product_id}'."
        )


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse '1:3,2:5@19.99' into OrderItemSpec list; '@price' is optional."""
    specs: list[OrderItemSpec] = []
    for product_id, rest in _split_pairs(raw):
        qty_str, _, price = rest.partition("@")
        specs.append(
            OrderItemSpec(
                product_id=product_id,
                quantity=_to_int(qty_str, product_id),
                unit_price=price or None,
            )
        )
    return specs


def _parse_quantities(raw: str) -> dict[str, int]:
    return {pid: _to_int(qty, pid) for pid, qty in _split_pairs(raw)}


@click.command("create")
@click.option("--user", "user_id", required=True, type=int, help="Customer user ID.")
@click.option("--items", required=True, help="Items as 'ProductID:Qty[@Price],...'.")
@click.option("--shipping-fee", default="0.00", show_default=True)
@click.option("--discount", default="0.00", show_default=True)
@click.option("--receiver", default="", help="Receiver name.")
@click.option("--address", default="", help="Receiver address.")
@click.option("--remark", default="", help="Customer remark.")
@click.option("--method", default="ALIPAY", show_default=True, help="Payment method.")
def order_create(
    user_id: int,
    items: str,
    shipping_fee: str,
    discount: str,
    receiver: str,
    address: str,
    remark: str,
    method: str,
) -> None:
    """Create a new order, reserving stock until it is paid."""
    command = CreateOrderCommand(
        user_id=user_id,
        items=_parse_items(items),
        shipping_fee=shipping_fee,
        discount_amount=discount,
        receiver_name=receiver,
        receiver_address=address,
        user_remark=remark,
        payment_method=method,
    )
    cfg = settings()
    order_repo = order_repository()
    handler = CreateOrderHandler(
        order_repo=order_repo,
        product_repo=product_repository(),
        payment_repo=payment_repository(),
        journal=compensation_journal(),
        lock_manager=lock_manager(),
        payment_gateway=payment_gateway(),
        order_numbers=order_number_generator(order_repo),
        lock_ttl_seconds=cfg.order_lock_ttl_seconds,
        payment_timeout_minutes=cfg.payment_timeout_minutes,
        max_line_items=cfg.max_line_items,
    )

    try:
        result = handler.handle(command)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {result.order_no} created")
    click.echo(f"  Total:     {result.total_amount}")
    click.echo(f"  Payable:   {result.actual_amount}")
    click.echo(f"  Payment:   {result.payment_no}  {result.payment_url}")
    click.echo(f"  Pay before {result.payment_deadline}")


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.order_no}  (status={dto.status})")
    click.echo(f"User:     {dto.user_id}")
    click.echo(f"Payment:  {dto.payment_status}   Shipping: {dto.shipping_status}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.payment_deadline and dto.status == "PENDING_PAYMENT":
        click.echo(f"Pay by:   {dto.payment_deadline}")
    if dto.carrier:
        click.echo(f"Shipped:  {dto.carrier} {dto.tracking_number}")
    if dto.cancel_reason:
        click.echo(f"Reason:   {dto.cancel_reason}")
    click.echo()

    if dto.has_shipments:
        # Extended table with shipped / returned columns
        click.echo(
            f"  {'Product':<20} {'Qty':>5} {'Shipped':>8} {'Returned':>9} {'Price':>10} {'Total':>10}"
        )
        click.echo(f"  {'-'*65}")
        for item in dto.items:
            click.echo(
                f"  {item.product_name:<20} {item.quantity:>5} "
                f"{item.shipped_quantity:>8} {item.returned_quantity:>9} "
                f"{item.unit_price:>10} {item.subtotal:>10}"
            )
        click.echo(f"  {'-'*65}")
    else:
        click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Total':>10}")
        click.echo(f"  {'-'*47}")
        for item in dto.items:
            click.echo(
                f"  {item.product_name:<20} {item.quantity:>5} {item.unit_price:>10} {item.subtotal:>10}"
            )
        click.echo(f"  {'-'*47}")

    click.echo(f"  {'Items':<27} {dto.total_amount:>20}")
    click.echo(f"  {'Shipping':<27} {dto.shipping_fee:>20}")
    click.echo(f"  {'Discount':<27} {dto.discount_amount:>20}")
    click.echo(f"  {'Payable':<27} {dto.actual_amount:>20}")
    if dto.refunded_amount != "$0.00":
        click.echo(f"  {'Refunded':<27} {dto.refunded_amount:>20}")
    if dto.next_statuses:
        click.echo(f"Next: {', '.join(dto.next_statuses)}")


@click.command("show")
@click.option("--order-no", required=True, help="Order number to display.")
@click.option("--user", "user_id", default=None, type=int, help="Restrict to this user.")
def order_show(order_no: str, user_id: int | None) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_no, user_id)
    except DomainException as exc:
        raise to_click(exc)

    _display_order(dto)


@click.command("list")
@click.option("--user", "user_id", required=True, type=int, help="Customer user ID.")
@click.option("--status", default=None, help="Only orders in this status.")
def order_list(user_id: int, status: str | None) -> None:
    """List a user's orders, newest first."""
    handler = ListOrdersHandler(order_repo=order_repository())

    try:
        listing = handler.handle(user_id, status)
    except DomainException as exc:
        raise to_click(exc)

    if not listing.orders:
        click.echo("No orders found.")
    for dto in listing.orders:
        click.echo(f"{dto.order_no}  {dto.status:<16} {dto.actual_amount:>12}  {dto.created_at}")
    if listing.counts:
        summary = ", ".join(f"{k}={v}" for k, v in sorted(listing.counts.items()))
        click.echo(f"Counts: {summary}")


@click.command("cancel")
@click.option("--order-no", required=True, help="Order number to cancel.")
@click.option("--user", "user_id", default=None, type=int, help="Acting user (owner check).")
@click.option("--reason", default="", help="Cancellation reason.")
def order_cancel(order_no: str, user_id: int | None, reason: str) -> None:
    """Cancel an order (releases reserved stock, refunds if paid)."""
    handler = CancelOrderHandler(
        order_repo=order_repository(),
        product_repo=product_repository(),
        payment_repo=payment_repository(),
        payment_gateway=payment_gateway(),
    )

    try:
        handler.handle(order_no, user_id, reason)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} cancelled.")


@click.command("ship")
@click.option("--order-no", required=True, help="Order number to ship.")
@click.option("--carrier", required=True, help="Shipping carrier.")
@click.option("--tracking", default="", help="Tracking number.")
def order_ship(order_no: str, carrier: str, tracking: str) -> None:
    """Ship every remaining item of a paid order."""
    handler = ShipOrderHandler(
        order_repo=order_repository(),
        product_repo=product_repository(),
    )

    try:
        handler.handle(order_no, carrier, tracking)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} shipped, items left the warehouse.")


@click.command("deliver")
@click.option("--order-no", required=True, help="Order number.")
def order_deliver(order_no: str) -> None:
    """Confirm an order was delivered."""
    try:
        ConfirmDeliveryHandler(order_repo=order_repository()).handle(order_no)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} delivered.")


@click.command("complete")
@click.option("--order-no", required=True, help="Order number.")
@click.option("--user", "user_id", default=None, type=int, help="Acting user (owner check).")
def order_complete(order_no: str, user_id: int | None) -> None:
    """Close a delivered order."""
    try:
        CompleteOrderHandler(order_repo=order_repository()).handle(order_no, user_id)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} completed.")


@click.command("return")
@click.option("--order-no", required=True, help="Order number.")
@click.option("--items", "items_str", required=True, help="Returned items as 'ProductID:Qty,...'.")
@click.option("--user", "user_id", default=None, type=int, help="Acting user (owner check).")
def order_return(order_no: str, items_str: str, user_id: int | None) -> None:
    """Record returned items; they go back into stock."""
    handler = ReturnOrderHandler(
        order_repo=order_repository(),
        product_repo=product_repository(),
        retry_attempts=settings().stock_retry_attempts,
    )

    try:
        handler.handle(order_no, _parse_quantities(items_str), user_id)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} returned, items restocked.")


@click.command("refund")
@click.option("--order-no", required=True, help="Order number.")
@click.option("--amount", default=None, help="Amount to refund (default: everything refundable).")
def order_refund(order_no: str, amount: str | None) -> None:
    """Refund a delivered or returned order."""
    handler = RefundOrderHandler(
        order_repo=order_repository(),
        payment_repo=payment_repository(),
        payment_gateway=payment_gateway(),
    )

    try:
        payment = handler.handle(order_no, amount)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(
        f"Order {order_no}: refunded {payment.refunded_amount} in total "
        f"(payment {payment.status})"
    )


@click.command("delete")
@click.option("--order-no", required=True, help="Order number.")
@click.option("--user", "user_id", default=None, type=int, help="Acting user (owner check).")
def order_delete(order_no: str, user_id: int | None) -> None:
    """Hide a finished order from listings."""
    try:
        DeleteOrderHandler(order_repo=order_repository()).handle(order_no, user_id)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} deleted.")


@click.command("restore")
@click.option("--order-no", required=True, help="Order number.")
@click.option("--user", "user_id", default=None, type=int, help="Acting user (owner check).")
def order_restore(order_no: str, user_id: int | None) -> None:
    """Bring back a deleted order."""
    try:
        RestoreOrderHandler(order_repo=order_repository()).handle(order_no, user_id)
    except DomainException as exc:
        raise to_click(exc)

    click.echo(f"Order {order_no} restored.")
