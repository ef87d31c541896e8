"""Ledger maintenance commands."""

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.parsing import money
from orgledger.domain.account import AccountService
from orgledger.domain.ledger import LedgerService


@click.group()
def ledger_group():
    """Check and repair account balances."""
    pass


@ledger_group.command("verify")
@click.option("--account", help="Only this account (name or ID)")
@click.pass_context
def verify_balances(ctx, account: str | None) -> None:
    """Compare stored balances with their postings without changing anything.

    Exits with status 1 if any account has drifted.
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    ledger = LedgerService(db)

    if account:
        account_ids = [resolve_account_or_exit(ctx, account_service, account)]
    else:
        account_ids = [acc.id for acc in account_service.list_accounts()]

    drifted = 0
    for account_id in account_ids:
        result = ledger.check(account_id)
        if result.is_consistent:
            click.echo(f"OK     {result.account_name}: {money(ctx, result.stored_balance)}")
        else:
            drifted += 1
            click.echo(
                f"DRIFT  {result.account_name}: stored {money(ctx, result.stored_balance)}, "
                f"expected {money(ctx, result.expected_balance)}"
            )

    if drifted:
        click.echo(f"\n{drifted} account(s) drifted. Run 'orgledger ledger recalculate' to repair.", err=True)
        ctx.exit(1)


@ledger_group.command("recalculate")
@click.option("--account", help="Only this account (name or ID)")
@click.pass_context
def recalculate_balances(ctx, account: str | None) -> None:
    """Rebuild stored balances from opening balance plus postings."""
    db = ctx.obj["db"]
    ledger = LedgerService(db)

    if account:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)
        results = [ledger.recalculate(account_id)]
    else:
        results = ledger.recalculate_all()

    for result in results:
        if result.is_consistent:
            click.echo(f"{result.account_name}: {money(ctx, result.expected_balance)} (unchanged)")
        else:
            click.echo(
                f"{result.account_name}: {money(ctx, result.stored_balance)} -> "
                f"{money(ctx, result.expected_balance)}"
            )


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
