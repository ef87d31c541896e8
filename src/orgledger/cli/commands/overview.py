"""Finance overview command."""

import click
from orgledger.cli.commands.income import PERIODS
from orgledger.cli.parsing import date_range_or_exit, money
from orgledger.domain.overview import OverviewService


@click.command("overview")
@click.option("--start-date", help="Start date (YYYY-MM-DD)")
@click.option("--end-date", help="End date (YYYY-MM-DD)")
@click.option("--period", type=click.Choice(PERIODS), help="Named period instead of explicit dates")
@click.pass_context
def overview(ctx, start_date: str | None, end_date: str | None, period: str | None) -> None:
    """Show organization totals.

    Income and expenditure cover the chosen period; balances and outstanding
    liabilities are current.
    """
    db = ctx.obj["db"]
    start, end = date_range_or_exit(ctx, start_date, end_date, period)
    result = OverviewService(db).get_overview(start_date=start, end_date=end)

    if start or end:
        click.echo(f"Period: {start or '...'} to {end or '...'}")
    click.echo(f"Accounts: {result.account_count}")
    click.echo(f"Total balance: {money(ctx, result.total_balance)}")
    click.echo(f"Income: {money(ctx, result.total_income)}")
    click.echo(f"Expenditure: {money(ctx, result.total_expenditure)}")
    click.echo(f"Net: {money(ctx, result.net_income)}")
    click.echo(f"Outstanding liabilities: {money(ctx, result.outstanding_liabilities)}")


def register_commands(cli):
    """Register overview command with main CLI."""
    cli.add_command(overview)
