"""Utility for resolving account names to IDs."""

from orgledger.domain.account import AccountService
from orgledger.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, account: str) -> str:
    """Resolve an account name or ID to an account ID.

    IDs are tried first; anything that is not a known ID is looked up by name.

    Raises:
        NotFoundError: If no account matches
    """
    if account_service.get_account(account) is not None:
        return account

    by_name = account_service.get_account_by_name(account)
    if by_name is not None:
        return by_name.id

    raise NotFoundError(f"Account '{account}' not found")
