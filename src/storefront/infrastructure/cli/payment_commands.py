"""CLI commands for payments."""

from __future__ import annotations

import click

from storefront.application.dto import PaymentDTO
from storefront.application.pay_order import (
    HandlePaymentCallbackHandler,
    InitiatePaymentHandler,
    PaymentCallback,
)
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import (
    order_repository,
    payment_gateway,
    payment_repository,
    settings,
)
from storefront.infrastructure.cli.errors import to_click


def _display_payment(dto: PaymentDTO) -> None:
    click.echo(f"Payment {dto.payment_no}  (status={dto.status})")
    click.echo(f"  Order:   {dto.order_no}")
    click.echo(f"  Method:  {dto.method}")
    click.echo(f"  Amount:  {dto.payment_amount} + fee {dto.fee_amount} = {dto.actual_amount}")
    if dto.transaction_no:
        click.echo(f"  Txn:     {dto.transaction_no}")
    if dto.payment_url:
        click.echo(f"  URL:     {dto.payment_url}")


@click.command("start")
@click.option("--order-no", required=True, help="Order number to pay.")
@click.option("--user", "user_id", default=None, type=int, help="Paying user (owner check).")
@click.option("--method", default=None, help="Payment method (e.g. ALIPAY, BANK_CARD).")
def payment_start(order_no: str, user_id: int | None, method: str | None) -> None:
    """Start or resume payment for a pending order."""
    handler = InitiatePaymentHandler(
        order_repo=order_repository(),
        payment_repo=payment_repository(),
        payment_gateway=payment_gateway(),
        payment_timeout_minutes=settings().payment_timeout_minutes,
    )

    try:
        dto = handler.handle(order_no, user_id, method)
    except DomainException as exc:
        raise to_click(exc)

    _display_payment(dto)


@click.command("callback")
@click.option("--order-no", required=True, help="Order number.")
@click.option("--amount", required=True, help="Amount the gateway reports as paid.")
@click.option("--txn", "transaction_no", required=True, help="Gateway transaction number.")
@click.option("--failed", is_flag=True, default=False, help="Report a failed payment.")
@click.option("--error", "error_message", default="", help="Failure message.")
def payment_callback(
    order_no: str, amount: str, transaction_no: str, failed: bool, error_message: str
) -> None:
    """Apply a payment notification from the gateway."""
    handler = HandlePaymentCallbackHandler(
        order_repo=order_repository(),
        payment_repo=payment_repository(),
    )
    callback = PaymentCallback(
        order_no=order_no,
        amount=amount,
        transaction_no=transaction_no,
        success=not failed,
        error_message=error_message,
    )

    try:
        dto = handler.handle(callback)
    except DomainException as exc:
        raise to_click(exc)

    _display_payment(dto)
