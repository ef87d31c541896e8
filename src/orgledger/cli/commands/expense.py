"""Expense commands."""

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, date_range_or_exit, money
from orgledger.cli.posting_display import echo_postings
from orgledger.cli.commands.income import PERIODS
from orgledger.domain.account import AccountService
from orgledger.domain.entities import PostingKind
from orgledger.domain.orchestrator import TransactionOrchestrator
from orgledger.domain.posting import PostingService


@click.group()
def expense_group():
    """Record and list expenditure."""
    pass


@expense_group.command("add")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--category", required=True, help="Expense category name")
@click.option("--date", help="Date paid (YYYY-MM-DD or 'today', 'yesterday'); defaults to today")
@click.option("--description", help="Description")
@click.option("--reference", help="Voucher or reference number")
@click.option("--key", help="Idempotency key; retrying with the same key records the expense once")
@click.pass_context
def add_expense(
    ctx,
    account: str,
    amount: str,
    category: str,
    date: str | None,
    description: str | None,
    reference: str | None,
    key: str | None,
) -> None:
    """Record an expense paid from ACCOUNT.

    The account must hold enough to cover the amount.

    Examples:
        orgledger expense add "Petty Cash" 35.50 --category Transport --description "Taxi to bank"
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    minor = amount_or_exit(ctx, amount)
    expense_date = date_or_exit(ctx, date)

    try:
        posting_id = TransactionOrchestrator(db).record_expenditure(
            account_id=account_id,
            amount=minor,
            category=category,
            date=expense_date,
            description=description,
            reference=reference,
            idempotency_key=key,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded expense of {money(ctx, minor)} (ID: {posting_id})")


@expense_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--category", help="Expense category name")
@click.option("--start-date", help="Start date (YYYY-MM-DD)")
@click.option("--end-date", help="End date (YYYY-MM-DD)")
@click.option("--period", type=click.Choice(PERIODS), help="Named period instead of explicit dates")
@click.pass_context
def list_expenses(
    ctx,
    account: str | None,
    category: str | None,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> None:
    """List expenditure postings, including liability payments."""
    db = ctx.obj["db"]
    account_service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None
    start, end = date_range_or_exit(ctx, start_date, end_date, period)

    postings = PostingService(db).list_postings(
        account_id=account_id,
        kind=PostingKind.EXPENDITURE,
        start_date=start,
        end_date=end,
        category=category,
    )
    if not postings:
        click.echo("No expenses found.")
        return

    names = {acc.id: acc.name for acc in account_service.list_accounts()}
    echo_postings(ctx, postings, names)


def register_commands(cli):
    """Register expense commands with main CLI."""
    cli.add_command(expense_group, name="expense")
