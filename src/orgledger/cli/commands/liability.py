"""Liability and loan commands."""

from datetime import date as date_type
from decimal import Decimal, InvalidOperation

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, money
from orgledger.domain.account import AccountService
from orgledger.domain.category import LIABILITIES_CATEGORY
from orgledger.domain.entities import LiabilityStatus
from orgledger.domain.liability import LiabilityService
from orgledger.domain.orchestrator import TransactionOrchestrator


@click.group()
def liability_group():
    """Track amounts owed and pay them down."""
    pass


@liability_group.command("add")
@click.argument("creditor")
@click.argument("amount")
@click.option("--description", required=True, help="What the liability is for")
@click.option("--category", default=LIABILITIES_CATEGORY, show_default=True, help="Liability category")
@click.option("--date", help="Date incurred; defaults to today")
@click.option("--initial-payment", help="Amount paid straight away")
@click.option("--account", help="Account the initial payment comes from (name or ID)")
@click.option("--key", help="Idempotency key")
@click.pass_context
def add_liability(
    ctx,
    creditor: str,
    amount: str,
    description: str,
    category: str,
    date: str | None,
    initial_payment: str | None,
    account: str | None,
    key: str | None,
) -> None:
    """Record AMOUNT owed to CREDITOR.

    Examples:
        orgledger liability add "Kofi Printing" 1000 --description "Programme booklets"
        orgledger liability add "Kofi Printing" 1000 --description "Booklets" --initial-payment 300 --account "Petty Cash"
    """
    db = ctx.obj["db"]
    original = amount_or_exit(ctx, amount)
    paid_now = amount_or_exit(ctx, initial_payment) if initial_payment else 0
    incurred = date_or_exit(ctx, date)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None

    try:
        liability_id = TransactionOrchestrator(db).create_liability_with_initial_payment(
            date=incurred or date_type.today(),
            category=category,
            description=description,
            creditor=creditor,
            original_amount=original,
            initial_payment=paid_now,
            account_id=account_id,
            idempotency_key=key,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created liability to {creditor} for {money(ctx, original)} (ID: {liability_id})")


@liability_group.command("loan")
@click.argument("lender")
@click.argument("account", metavar="ACCOUNT")
@click.option("--received", required=True, help="Amount received into ACCOUNT")
@click.option("--payable", required=True, help="Total amount to be repaid")
@click.option("--description", required=True, help="Loan description")
@click.option("--date", help="Date received; defaults to today")
@click.option("--interest-rate", help="Interest rate in percent")
@click.option("--start-date", help="Loan start date")
@click.option("--end-date", help="Loan end date")
@click.option("--key", help="Idempotency key")
@click.pass_context
def create_loan(
    ctx,
    lender: str,
    account: str,
    received: str,
    payable: str,
    description: str,
    date: str | None,
    interest_rate: str | None,
    start_date: str | None,
    end_date: str | None,
    key: str | None,
) -> None:
    """Record a loan or overdraft from LENDER paid into ACCOUNT.

    Example:
        orgledger liability loan "GCB" "Main Account" --received 5000 --payable 5600 --description "Roof repair loan"
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    amount_received = amount_or_exit(ctx, received)
    amount_payable = amount_or_exit(ctx, payable)
    received_on = date_or_exit(ctx, date)
    loan_start = date_or_exit(ctx, start_date)
    loan_end = date_or_exit(ctx, end_date)

    rate = None
    if interest_rate is not None:
        try:
            rate = Decimal(interest_rate)
        except InvalidOperation:
            click.echo(f"Error: Invalid interest rate: {interest_rate}", err=True)
            ctx.exit(1)

    try:
        liability_id = TransactionOrchestrator(db).create_loan(
            account_id=account_id,
            lender=lender,
            amount_received=amount_received,
            amount_payable=amount_payable,
            date=received_on or date_type.today(),
            description=description,
            interest_rate=rate,
            loan_start_date=loan_start,
            loan_end_date=loan_end,
            idempotency_key=key,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded loan from {lender} (ID: {liability_id})")


@liability_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in LiabilityStatus]), help="Filter by status")
@click.option("--loans", "loans_only", is_flag=True, help="Only loans and overdrafts")
@click.pass_context
def list_liabilities(ctx, status: str | None, loans_only: bool) -> None:
    """List liabilities, newest first."""
    db = ctx.obj["db"]
    liabilities = LiabilityService(db).list_liabilities(
        is_loan=True if loans_only else None, status=status
    )
    if not liabilities:
        click.echo("No liabilities found.")
        return

    click.echo(f"\nFound {len(liabilities)} liabilit{'ies' if len(liabilities) != 1 else 'y'}:")
    click.echo("-" * 120)
    for li in liabilities:
        click.echo(
            f"{li.date} {li.creditor[:20]:20s} {li.description[:25]:25s} "
            f"{money(ctx, li.original_amount):>13s} {money(ctx, li.balance):>13s} "
            f"{li.status.value:14s} {li.id}"
        )
    click.echo("-" * 120)
    click.echo(f"Outstanding: {money(ctx, sum(li.balance for li in liabilities))}")


@liability_group.command("show")
@click.argument("liability_id")
@click.pass_context
def show_liability(ctx, liability_id: str) -> None:
    """Show a liability and its payments."""
    db = ctx.obj["db"]
    service = LiabilityService(db)
    try:
        li = service.verify(liability_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{li.description} ({li.category})")
    click.echo(f"  Creditor: {li.creditor}")
    click.echo(f"  Date: {li.date}")
    click.echo(f"  Original amount: {money(ctx, li.original_amount)}")
    click.echo(f"  Amount paid: {money(ctx, li.amount_paid)}")
    click.echo(f"  Balance: {money(ctx, li.balance)}")
    click.echo(f"  Status: {li.status.value}")
    if li.is_loan:
        click.echo(f"  Amount received: {money(ctx, li.amount_received or 0)}")
        if li.interest_rate is not None:
            click.echo(f"  Interest rate: {li.interest_rate}%")
        if li.loan_start_date and li.loan_end_date:
            click.echo(f"  Term: {li.loan_start_date} to {li.loan_end_date} ({li.loan_duration_days} days)")

    payments = service.payments(liability_id)
    if payments:
        click.echo("\nPayments:")
        for p in payments:
            click.echo(f"  {p.date} {money(ctx, -p.amount):>14s}  {p.id}")


@liability_group.command("pay")
@click.argument("liability_id")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--date", help="Payment date; defaults to today")
@click.option("--description", help="Payment description")
@click.option("--reference", help="Voucher or reference number")
@click.option("--key", help="Idempotency key; retrying with the same key pays once")
@click.pass_context
def pay_liability(
    ctx,
    liability_id: str,
    account: str,
    amount: str,
    date: str | None,
    description: str | None,
    reference: str | None,
    key: str | None,
) -> None:
    """Pay AMOUNT towards a liability from ACCOUNT."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    minor = amount_or_exit(ctx, amount)
    paid_on = date_or_exit(ctx, date)

    try:
        posting_id = TransactionOrchestrator(db).pay_liability(
            liability_id=liability_id,
            account_id=account_id,
            amount=minor,
            date=paid_on,
            description=description,
            reference=reference,
            idempotency_key=key,
        )
        li = LiabilityService(db).require_liability(liability_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Paid {money(ctx, minor)} (posting {posting_id})")
    click.echo(f"Remaining balance: {money(ctx, li.balance)} ({li.status.value})")


@liability_group.command("edit")
@click.argument("liability_id")
@click.option("--category", help="Liability category")
@click.option("--description", help="Description")
@click.option("--creditor", help="Creditor")
@click.option("--amount", help="Original amount")
@click.option("--amount-paid", help="Amount already paid (only before any payment is recorded)")
@click.pass_context
def edit_liability(
    ctx,
    liability_id: str,
    category: str | None,
    description: str | None,
    creditor: str | None,
    amount: str | None,
    amount_paid: str | None,
) -> None:
    """Edit a liability. Status is always derived from the amounts."""
    db = ctx.obj["db"]
    original = amount_or_exit(ctx, amount) if amount is not None else None
    paid = amount_or_exit(ctx, amount_paid) if amount_paid is not None else None

    try:
        li = LiabilityService(db).update_liability(
            liability_id,
            category=category,
            description=description,
            creditor=creditor,
            original_amount=original,
            amount_paid=paid,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated liability {liability_id}: balance {money(ctx, li.balance)} ({li.status.value})")


@liability_group.command("delete")
@click.argument("liability_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_liability(ctx, liability_id: str, yes: bool) -> None:
    """Delete a liability that has no payments."""
    db = ctx.obj["db"]
    service = LiabilityService(db)
    li = service.get_liability(liability_id)
    if li is None:
        click.echo(f"Error: Liability {liability_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete liability '{li.description}' owed to {li.creditor}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_liability(liability_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted liability {liability_id}")


def register_commands(cli):
    """Register liability commands with main CLI."""
    cli.add_command(liability_group, name="liability")
