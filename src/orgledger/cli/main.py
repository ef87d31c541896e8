"""Main CLI entry point."""

import logging

import click
from orgledger.database.factories import create_sqlite_database
from orgledger.utils.amount_parser import DEFAULT_CURRENCY

# Import and register all commands at module level
from orgledger.cli.commands import (
    account,
    category,
    income,
    expense,
    posting,
    transfer,
    liability,
    reconcile,
    ledger,
    overview,
    budget,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides ORGLEDGER_DB_PATH environment variable)",
    envvar="ORGLEDGER_DB_PATH",
)
@click.option(
    "--org",
    default="default",
    show_default=True,
    help="Organization whose books to work on",
    envvar="ORGLEDGER_ORG",
)
@click.option(
    "--currency",
    default=DEFAULT_CURRENCY,
    show_default=True,
    help="Currency symbol used when displaying amounts",
    envvar="ORGLEDGER_CURRENCY",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug detail to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, org: str, currency: str, verbose: bool):
    """orgledger - Organization finance ledger.

    Keep account balances, liabilities and bank reconciliations consistent
    for one organization at a time.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj["currency"] = currency

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path, organization_id=org)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
income.register_commands(cli)
expense.register_commands(cli)
posting.register_commands(cli)
transfer.register_commands(cli)
liability.register_commands(cli)
reconcile.register_commands(cli)
ledger.register_commands(cli)
overview.register_commands(cli)
budget.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
