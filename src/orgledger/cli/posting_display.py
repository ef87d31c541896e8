"""CLI helpers for printing postings."""

import click

from orgledger.cli.parsing import money
from orgledger.domain.entities import Posting


def echo_postings(ctx: click.Context, postings: list[Posting], account_names: dict[str, str]) -> None:
    """Print postings one per line with a total."""
    click.echo(f"\nFound {len(postings)} posting(s):")
    click.echo("-" * 110)
    for p in postings:
        marker = "R" if p.is_reconciled else " "
        description = (p.description or "")[:30]
        click.echo(
            f"{p.date} {marker} {account_names.get(p.account_id, 'Unknown')[:16]:16s} "
            f"{p.category[:20]:20s} {description:30s} {money(ctx, p.amount):>14s}  {p.id}"
        )
    click.echo("-" * 110)
    click.echo(f"Total: {money(ctx, sum(p.amount for p in postings))}")
