"""Posting edit and delete commands."""

import click
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, date_or_exit, money
from orgledger.domain.orchestrator import TransactionOrchestrator
from orgledger.domain.posting import PostingService


@click.group()
def posting_group():
    """Edit or delete individual postings."""
    pass


@posting_group.command("show")
@click.argument("posting_id")
@click.pass_context
def show_posting(ctx, posting_id: str) -> None:
    """Show every field of a posting."""
    db = ctx.obj["db"]
    try:
        p = PostingService(db).require_posting(posting_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Posting {p.id}")
    click.echo(f"  Kind: {p.kind.value}")
    click.echo(f"  Date: {p.date}")
    click.echo(f"  Amount: {money(ctx, p.amount)}")
    click.echo(f"  Category: {p.category}")
    for label, value in (
        ("Description", p.description),
        ("Reference", p.reference),
        ("Member", p.member_name or p.member_id),
        ("Liability", p.linked_liability_id),
        ("Transfer", p.transfer_id),
        ("Reconciliation", p.reconciliation_id),
        ("Added in reconciliation", p.added_in_reconciliation_id),
    ):
        if value:
            click.echo(f"  {label}: {value}")
    click.echo(f"  Reconciled: {'yes' if p.is_reconciled else 'no'}")


@posting_group.command("edit")
@click.argument("posting_id")
@click.option("--amount", help="New amount (the posting keeps its direction)")
@click.option("--date", help="New date")
@click.option("--category", help="New category name")
@click.option("--description", help="New description")
@click.option("--reference", help="New reference number")
@click.option("--key", help="Idempotency key for the amount change")
@click.pass_context
def edit_posting(
    ctx,
    posting_id: str,
    amount: str | None,
    date: str | None,
    category: str | None,
    description: str | None,
    reference: str | None,
    key: str | None,
) -> None:
    """Update a posting.

    Updates only the fields that are provided. Changing the amount also
    adjusts the account balance and any liability the posting pays.
    Reconciled postings cannot be edited.

    Examples:
        orgledger posting edit <id> --amount 120.00
        orgledger posting edit <id> --description "Hall rental" --reference V-104
    """
    db = ctx.obj["db"]
    new_date = date_or_exit(ctx, date)
    new_amount = amount_or_exit(ctx, amount) if amount is not None else None

    try:
        if new_amount is not None:
            TransactionOrchestrator(db).update_posting_amount(posting_id, new_amount, idempotency_key=key)
        if any(v is not None for v in (new_date, category, description, reference)):
            PostingService(db).update_posting_details(
                posting_id,
                date=new_date,
                category=category,
                description=description,
                reference=reference,
            )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated posting {posting_id}")


@posting_group.command("delete")
@click.argument("posting_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.option("--key", help="Idempotency key")
@click.pass_context
def delete_posting(ctx, posting_id: str, yes: bool, key: str | None) -> None:
    """Delete an income or expense posting and reverse its effect on the balance."""
    db = ctx.obj["db"]
    try:
        posting = PostingService(db).require_posting(posting_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(
        f"Delete {posting.kind.value} of {money(ctx, posting.amount)} on {posting.date}?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        TransactionOrchestrator(db).delete_posting(posting_id, idempotency_key=key)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted posting {posting_id}")


def register_commands(cli):
    """Register posting commands with main CLI."""
    cli.add_command(posting_group, name="posting")
