"""Translation of domain errors into CLI errors."""

from __future__ import annotations

import click

from storefront.domain.exceptions import DomainException


def to_click(exc: DomainException) -> click.ClickException:
    """Show the machine-readable code alongside the message."""
    return click.ClickException(f"[{exc.code}] {exc}")
