"""CLI helpers for parsing amounts and dates and formatting money."""

from datetime import date
from typing import Optional

import click

from orgledger.utils.amount_parser import format_amount, parse_amount
from orgledger.utils.date_parser import get_date_range, parse_date


def amount_or_exit(ctx: click.Context, text: str, allow_negative: bool = False) -> int:
    """Parse a major-unit amount into minor units, or exit with a CLI error."""
    try:
        amount = parse_amount(text)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    if amount < 0 and not allow_negative:
        click.echo("Error: Amount cannot be negative", err=True)
        ctx.exit(1)
    return amount


def date_or_exit(ctx: click.Context, text: Optional[str]) -> Optional[date]:
    """Parse an optional date option, or exit with a CLI error."""
    if text is None:
        return None
    try:
        return parse_date(text)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)


def date_range_or_exit(
    ctx: click.Context,
    start_date: Optional[str],
    end_date: Optional[str],
    period: Optional[str],
) -> tuple[Optional[date], Optional[date]]:
    """Resolve --period or --start-date/--end-date into a date range."""
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)
    if period:
        return get_date_range(period)
    return date_or_exit(ctx, start_date), date_or_exit(ctx, end_date)


def money(ctx: click.Context, minor_units: int) -> str:
    """Format minor units with the configured currency symbol."""
    return format_amount(minor_units, ctx.obj["currency"])
