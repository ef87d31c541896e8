"""Income commands."""

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, date_range_or_exit, money
from orgledger.cli.posting_display import echo_postings
from orgledger.domain.account import AccountService
from orgledger.domain.entities import PostingKind
from orgledger.domain.orchestrator import TransactionOrchestrator
from orgledger.domain.posting import PostingService

PERIODS = ["this-month", "last-month", "this-year", "last-year"]


@click.group()
def income_group():
    """Record and list income."""
    pass


@income_group.command("add")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--category", required=True, help="Income category name")
@click.option("--date", help="Date received (YYYY-MM-DD or 'today', 'yesterday'); defaults to today")
@click.option("--description", help="Description")
@click.option("--reference", help="Receipt or reference number")
@click.option("--member-id", help="Contributing member ID (member-tracking categories)")
@click.option("--member-name", help="Contributing member name")
@click.option("--key", help="Idempotency key; retrying with the same key records the income once")
@click.pass_context
def add_income(
    ctx,
    account: str,
    amount: str,
    category: str,
    date: str | None,
    description: str | None,
    reference: str | None,
    member_id: str | None,
    member_name: str | None,
    key: str | None,
) -> None:
    """Record income received into ACCOUNT.

    Examples:
        orgledger income add "Main Account" 250.00 --category Dues --member-name "Ama Mensah"
        orgledger income add "Petty Cash" 40 --category Donations --date yesterday
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    minor = amount_or_exit(ctx, amount)
    income_date = date_or_exit(ctx, date)

    try:
        posting_id = TransactionOrchestrator(db).record_income(
            account_id=account_id,
            amount=minor,
            category=category,
            date=income_date,
            description=description,
            reference=reference,
            member_id=member_id,
            member_name=member_name,
            idempotency_key=key,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded income of {money(ctx, minor)} (ID: {posting_id})")


@income_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--category", help="Income category name")
@click.option("--start-date", help="Start date (YYYY-MM-DD)")
@click.option("--end-date", help="End date (YYYY-MM-DD)")
@click.option("--period", type=click.Choice(PERIODS), help="Named period instead of explicit dates")
@click.pass_context
def list_income(
    ctx,
    account: str | None,
    category: str | None,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> None:
    """List income postings."""
    db = ctx.obj["db"]
    account_service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None
    start, end = date_range_or_exit(ctx, start_date, end_date, period)

    postings = PostingService(db).list_postings(
        account_id=account_id,
        kind=PostingKind.INCOME,
        start_date=start,
        end_date=end,
        category=category,
    )
    if not postings:
        click.echo("No income found.")
        return

    names = {acc.id: acc.name for acc in account_service.list_accounts()}
    echo_postings(ctx, postings, names)


def register_commands(cli):
    """Register income commands with main CLI."""
    cli.add_command(income_group, name="income")
