"""CLI helpers for account resolution."""

import click
from orgledger.domain.account import AccountService
from orgledger.cli.error_handling import handle_domain_error
from orgledger.utils.account_resolver import resolve_account


def resolve_account_or_exit(ctx: click.Context, account_service: AccountService, account: str) -> str:
    """Resolve account name or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except ValueError as exc:
        handle_domain_error(ctx, exc)
