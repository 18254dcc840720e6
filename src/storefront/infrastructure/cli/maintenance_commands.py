"""CLI commands for periodic housekeeping jobs."""

from __future__ import annotations

from datetime import timedelta

import click

from storefront.application.expire_orders import ExpireUnpaidOrdersHandler
from storefront.application.recover_reservations import RecoverCompensationsHandler
from storefront.infrastructure.bootstrap import (
    compensation_journal,
    order_repository,
    payment_repository,
    product_repository,
)


@click.command("expire")
def maintenance_expire() -> None:
    """Cancel unpaid orders past their payment deadline."""
    handler = ExpireUnpaidOrdersHandler(
        order_repo=order_repository(),
        product_repo=product_repository(),
        payment_repo=payment_repository(),
    )
    report = handler.handle()

    click.echo(f"Expired {len(report.expired)} order(s).")
    for order_no in report.expired:
        click.echo(f"  {order_no}")
    if report.failed:
        click.echo(f"Failed to expire: {', '.join(report.failed)}")


@click.command("recover")
@click.option(
    "--min-age", "min_age_minutes", default=5, type=int, show_default=True,
    help="Only touch journal entries older than this many minutes.",
)
def maintenance_recover(min_age_minutes: int) -> None:
    """Resolve stock reservations left open by interrupted checkouts."""
    handler = RecoverCompensationsHandler(
        journal=compensation_journal(),
        order_repo=order_repository(),
        product_repo=product_repository(),
    )
    report = handler.handle(min_age=timedelta(minutes=min_age_minutes))

    click.echo(
        f"Committed {report.committed}, released {report.compensated}, "
        f"abandoned {report.abandoned}, stranded {report.stranded}"
    )
