"""Account management commands."""

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, money
from orgledger.domain.account import AccountService
from orgledger.domain.entities import AccountType, BankAccountType, MobileNetwork
from orgledger.domain.orchestrator import TransactionOrchestrator
from orgledger.domain.posting import PostingService


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType]),
    default=AccountType.CASH.value,
    show_default=True,
    help="Account type",
)
@click.option("--opening-balance", default="0", help="Opening balance (e.g., 1000.00)")
@click.option("--date", help="Opening balance date (defaults to today)")
@click.option("--description", help="Account description")
@click.option("--bank-name", help="Bank name (Bank accounts)")
@click.option("--branch", help="Bank branch (Bank accounts)")
@click.option("--account-number", help="Account number (Bank accounts)")
@click.option(
    "--bank-account-type",
    type=click.Choice([t.value for t in BankAccountType]),
    help="Bank account type (Bank accounts)",
)
@click.option(
    "--network",
    type=click.Choice([n.value for n in MobileNetwork]),
    help="Network (Mobile Money accounts)",
)
@click.option("--number", help="Wallet number (Mobile Money accounts)")
@click.option("--key", help="Idempotency key; retrying with the same key does nothing twice")
@click.pass_context
def create_account(
    ctx,
    name: str,
    account_type: str,
    opening_balance: str,
    date: str | None,
    description: str | None,
    bank_name: str | None,
    branch: str | None,
    account_number: str | None,
    bank_account_type: str | None,
    network: str | None,
    number: str | None,
    key: str | None,
):
    """Create a new account, optionally with an opening balance.

    Examples:
        orgledger account create "Petty Cash"
        orgledger account create "Main Account" --type Bank --bank-name "GCB" --opening-balance 5000
        orgledger account create "MoMo" --type "Mobile Money" --network MTN --number 0240000000
    """
    db = ctx.obj["db"]
    orchestrator = TransactionOrchestrator(db)

    opening = amount_or_exit(ctx, opening_balance)
    opening_date = date_or_exit(ctx, date)

    try:
        account_id = orchestrator.create_account_with_opening_balance(
            name=name,
            account_type=account_type,
            opening_balance=opening,
            date=opening_date,
            description=description,
            idempotency_key=key,
            bank_name=bank_name,
            bank_branch=branch,
            account_number=account_number,
            bank_account_type=bank_account_type,
            network=network,
            number=number,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created account '{name}' (ID: {account_id})")
    if opening:
        click.echo(f"Opening balance: {money(ctx, opening)}")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts with their balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        click.echo(
            f"{acc.id} | {acc.name:20s} | {acc.account_type.value:12s} | {money(ctx, acc.balance):>16s}"
        )
    click.echo("-" * 80)
    click.echo(f"Total: {money(ctx, sum(acc.balance for acc in accounts))}")


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str):
    """Show an account and its statement.

    ACCOUNT can be an account name or ID. Postings are listed in the order
    they were recorded, with the running balance after each.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    posting_service = PostingService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.require_account(account_id)

    click.echo(f"{acc.name} ({acc.account_type.value})")
    if acc.bank_name:
        click.echo(f"  Bank: {acc.bank_name} {acc.bank_branch or ''} {acc.account_number or ''}".rstrip())
    if acc.network:
        click.echo(f"  Network: {acc.network.value} {acc.number or ''}".rstrip())
    click.echo(f"  Opening balance: {money(ctx, acc.opening_balance)}")
    click.echo(f"  Balance: {money(ctx, acc.balance)}")

    lines = posting_service.statement(account_id)
    if not lines:
        click.echo("\nNo postings.")
        return

    click.echo("\nStatement:")
    click.echo("-" * 100)
    for line in lines:
        p = line.posting
        marker = "R" if p.is_reconciled else " "
        click.echo(
            f"{p.date} {marker} {p.kind.value:15s} {p.category[:20]:20s} "
            f"{money(ctx, p.amount):>14s} {money(ctx, line.running_balance):>14s}  {p.id}"
        )


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New account name")
@click.option("--description", help="Account description")
@click.option("--bank-name", help="Bank name")
@click.option("--branch", help="Bank branch")
@click.option("--account-number", help="Account number")
@click.option("--bank-account-type", type=click.Choice([t.value for t in BankAccountType]))
@click.option("--network", type=click.Choice([n.value for n in MobileNetwork]))
@click.option("--number", help="Wallet number")
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    description: str | None,
    bank_name: str | None,
    branch: str | None,
    account_number: str | None,
    bank_account_type: str | None,
    network: str | None,
    number: str | None,
) -> None:
    """Update account details. Balances cannot be edited.

    Examples:
        orgledger account update "Main Account" --name "GCB Current"
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        service.update_account(
            account_id,
            name=name,
            description=description,
            bank_name=bank_name,
            bank_branch=branch,
            account_number=account_number,
            bank_account_type=bank_account_type,
            network=network,
            number=number,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated account {account_id}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID. Accounts with postings or
    reconciliations cannot be deleted.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.require_account(account_id)

    if not yes and not click.confirm(f"Are you sure you want to delete account '{account_obj.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted account '{account_obj.name}'")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
