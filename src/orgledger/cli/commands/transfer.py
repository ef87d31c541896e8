"""Transfer commands."""

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, money
from orgledger.domain.account import AccountService
from orgledger.domain.orchestrator import TransactionOrchestrator
from orgledger.domain.transfer import TransferService


@click.group()
def transfer_group():
    """Move money between accounts."""
    pass


@transfer_group.command("create")
@click.argument("from_account", metavar="FROM_ACCOUNT")
@click.argument("to_account", metavar="TO_ACCOUNT")
@click.argument("amount")
@click.option("--date", help="Transfer date; defaults to today")
@click.option("--description", help="Description")
@click.option("--key", help="Idempotency key; retrying with the same key transfers once")
@click.pass_context
def create_transfer(
    ctx,
    from_account: str,
    to_account: str,
    amount: str,
    date: str | None,
    description: str | None,
    key: str | None,
) -> None:
    """Transfer AMOUNT from FROM_ACCOUNT to TO_ACCOUNT.

    Examples:
        orgledger transfer create "Main Account" "Petty Cash" 200
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    from_id = resolve_account_or_exit(ctx, account_service, from_account)
    to_id = resolve_account_or_exit(ctx, account_service, to_account)
    minor = amount_or_exit(ctx, amount)
    transfer_date = date_or_exit(ctx, date)

    try:
        transfer_id = TransactionOrchestrator(db).create_transfer(
            from_account_id=from_id,
            to_account_id=to_id,
            amount=minor,
            date=transfer_date,
            description=description,
            idempotency_key=key,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transferred {money(ctx, minor)} (ID: {transfer_id})")


@transfer_group.command("list")
@click.option("--account", help="Only transfers touching this account (name or ID)")
@click.pass_context
def list_transfers(ctx, account: str | None) -> None:
    """List transfers, newest first."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None

    transfers = TransferService(db).list_transfers(account_id=account_id)
    if not transfers:
        click.echo("No transfers found.")
        return

    click.echo(f"\nFound {len(transfers)} transfer(s):")
    click.echo("-" * 100)
    for t in transfers:
        click.echo(
            f"{t.date} {t.from_account_name[:20]:20s} -> {t.to_account_name[:20]:20s} "
            f"{money(ctx, t.amount):>14s}  {t.id}"
        )


@transfer_group.command("show")
@click.argument("transfer_id")
@click.pass_context
def show_transfer(ctx, transfer_id: str) -> None:
    """Show a transfer and its two postings."""
    db = ctx.obj["db"]
    service = TransferService(db)
    try:
        legs = service.legs(transfer_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    t = service.get_transfer(transfer_id)

    click.echo(f"Transfer {t.id} on {t.date}")
    click.echo(f"  {t.from_account_name} -> {t.to_account_name}: {money(ctx, t.amount)}")
    if t.description:
        click.echo(f"  Description: {t.description}")
    for leg in legs:
        marker = " (reconciled)" if leg.is_reconciled else ""
        click.echo(f"  {leg.kind.value:12s} {money(ctx, leg.amount):>14s}  {leg.id}{marker}")


@transfer_group.command("delete")
@click.argument("transfer_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.option("--key", help="Idempotency key")
@click.pass_context
def delete_transfer(ctx, transfer_id: str, yes: bool, key: str | None) -> None:
    """Delete a transfer and move the money back."""
    db = ctx.obj["db"]
    transfer = TransferService(db).get_transfer(transfer_id)
    if transfer is None:
        click.echo(f"Error: Transfer {transfer_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(
        f"Delete transfer of {money(ctx, transfer.amount)} from "
        f"{transfer.from_account_name} to {transfer.to_account_name}?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        TransactionOrchestrator(db).delete_transfer(transfer_id, idempotency_key=key)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transfer {transfer_id}")


def register_commands(cli):
    """Register transfer commands with main CLI."""
    cli.add_command(transfer_group, name="transfer")
