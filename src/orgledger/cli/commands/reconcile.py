"""Bank reconciliation commands."""

import click
from orgledger.cli.account_resolution import resolve_account_or_exit
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, money
from orgledger.domain.account import AccountService
from orgledger.domain.entities import EntryType, Reconciliation
from orgledger.domain.reconciliation import ReconciliationService

ENTRY_TYPES = [t.value for t in EntryType]


def echo_reconciliation(ctx: click.Context, rec: Reconciliation) -> None:
    """Print the reconciliation summary lines."""
    click.echo(f"Reconciliation {rec.id} ({rec.account_name}, {rec.date})")
    click.echo(f"  Book balance: {money(ctx, rec.book_balance)}")
    click.echo(f"  Bank balance: {money(ctx, rec.bank_balance)}")
    click.echo(f"  Difference:   {money(ctx, rec.difference)}")
    click.echo(f"  Status: {rec.status.value}")
    if rec.notes:
        click.echo(f"  Notes: {rec.notes}")


@click.group()
def reconcile_group():
    """Reconcile accounts against bank statements."""
    pass


@reconcile_group.command("start")
@click.argument("account", metavar="ACCOUNT")
@click.argument("bank_balance")
@click.option("--date", help="Statement date; defaults to today")
@click.option("--notes", help="Notes")
@click.pass_context
def start_reconciliation(ctx, account: str, bank_balance: str, date: str | None, notes: str | None) -> None:
    """Start reconciling ACCOUNT against a statement showing BANK_BALANCE."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    balance = amount_or_exit(ctx, bank_balance, allow_negative=True)
    statement_date = date_or_exit(ctx, date)

    try:
        rec = ReconciliationService(db).create(account_id, balance, date=statement_date, notes=notes)
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_reconciliation(ctx, rec)


@reconcile_group.command("list")
@click.option("--account", help="Account name or ID")
@click.pass_context
def list_reconciliations(ctx, account: str | None) -> None:
    """List reconciliations, newest first."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None

    reconciliations = ReconciliationService(db).list_reconciliations(account_id=account_id)
    if not reconciliations:
        click.echo("No reconciliations found.")
        return

    click.echo(f"\nFound {len(reconciliations)} reconciliation(s):")
    click.echo("-" * 110)
    for rec in reconciliations:
        click.echo(
            f"{rec.date} {rec.account_name[:20]:20s} {money(ctx, rec.book_balance):>14s} "
            f"{money(ctx, rec.bank_balance):>14s} {money(ctx, rec.difference):>14s} "
            f"{rec.status.value:10s} {rec.id}"
        )


@reconcile_group.command("show")
@click.argument("reconciliation_id")
@click.pass_context
def show_reconciliation(ctx, reconciliation_id: str) -> None:
    """Show a reconciliation and the postings it has to match."""
    db = ctx.obj["db"]
    service = ReconciliationService(db)
    try:
        rec = service.get_reconciliation(reconciliation_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    echo_reconciliation(ctx, rec)
    postings = service.attributable_postings(rec.account_id, rec.id)
    if not postings:
        return

    added = rec.added_income_entries | rec.added_expenditure_entries
    click.echo("\nEntries ([x] matched, + added in this reconciliation):")
    for p in postings:
        mark = "x" if p.id in rec.reconciled_entries(p.entry_type) else " "
        plus = "+" if p.id in added else " "
        click.echo(
            f"  [{mark}]{plus} {p.date} {p.category[:20]:20s} {money(ctx, p.amount):>14s}  {p.id}"
        )


@reconcile_group.command("toggle")
@click.argument("reconciliation_id")
@click.argument("posting_ids", nargs=-1, required=True)
@click.pass_context
def toggle_entries(ctx, reconciliation_id: str, posting_ids: tuple[str, ...]) -> None:
    """Mark or unmark postings as matched against the statement."""
    db = ctx.obj["db"]
    service = ReconciliationService(db)
    try:
        for posting_id in posting_ids:
            rec = service.toggle_entry_reconciled(reconciliation_id, posting_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_reconciliation(ctx, rec)


@reconcile_group.command("select-all")
@click.argument("reconciliation_id")
@click.option("--type", "entry_type", type=click.Choice(ENTRY_TYPES), required=True, help="Entry type")
@click.option("--clear", is_flag=True, help="Unmark instead of mark")
@click.pass_context
def select_all(ctx, reconciliation_id: str, entry_type: str, clear: bool) -> None:
    """Mark (or with --clear, unmark) every entry of one type."""
    db = ctx.obj["db"]
    try:
        rec = ReconciliationService(db).select_all(reconciliation_id, EntryType(entry_type), not clear)
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_reconciliation(ctx, rec)


@reconcile_group.command("add-entry")
@click.argument("reconciliation_id")
@click.argument("amount")
@click.option("--type", "entry_type", type=click.Choice(ENTRY_TYPES), required=True, help="Entry type")
@click.option("--category", required=True, help="Income or expense category")
@click.option("--date", help="Entry date; defaults to the statement date")
@click.option("--description", help="Description")
@click.option("--reference", help="Reference number")
@click.option("--key", help="Idempotency key")
@click.pass_context
def add_entry(
    ctx,
    reconciliation_id: str,
    amount: str,
    entry_type: str,
    category: str,
    date: str | None,
    description: str | None,
    reference: str | None,
    key: str | None,
) -> None:
    """Record income or an expense found on the statement but missing from the books.

    Example:
        orgledger reconcile add-entry <id> 12.50 --type expenditure --category "Bank Charges"
    """
    db = ctx.obj["db"]
    minor = amount_or_exit(ctx, amount)
    entry_date = date_or_exit(ctx, date)
    try:
        rec = ReconciliationService(db).add_entry_during_session(
            reconciliation_id,
            EntryType(entry_type),
            minor,
            category,
            date=entry_date,
            description=description,
            reference=reference,
            idempotency_key=key,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_reconciliation(ctx, rec)


@reconcile_group.command("set-bank-balance")
@click.argument("reconciliation_id")
@click.argument("bank_balance")
@click.option("--notes", help="Replace the notes")
@click.pass_context
def set_bank_balance(ctx, reconciliation_id: str, bank_balance: str, notes: str | None) -> None:
    """Correct the statement balance of a reconciliation."""
    db = ctx.obj["db"]
    balance = amount_or_exit(ctx, bank_balance, allow_negative=True)
    try:
        rec = ReconciliationService(db).update_bank_balance(reconciliation_id, balance, notes=notes)
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_reconciliation(ctx, rec)


@reconcile_group.command("delete")
@click.argument("reconciliation_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_reconciliation(ctx, reconciliation_id: str, yes: bool) -> None:
    """Delete a reconciliation and unmark the entries it matched.

    Entries added during the reconciliation are kept.
    """
    db = ctx.obj["db"]
    if not yes and not click.confirm(f"Delete reconciliation {reconciliation_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        ReconciliationService(db).delete(reconciliation_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted reconciliation {reconciliation_id}")


def register_commands(cli):
    """Register reconciliation commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
