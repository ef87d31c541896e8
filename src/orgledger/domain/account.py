"""Account domain service."""

from typing import Optional
from orgledger.database.base import Database
from orgledger.domain.entities import Account as AccountEntity, AccountType
from orgledger.domain.errors import ConflictError, EntityNotFound, ValidationError


class AccountService:
    """Service for managing account records.

    Balances are never written here; they move only through
    :class:`orgledger.domain.ledger.LedgerService`.
    """

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def validate_new_account(self, name: str, account_type: str) -> AccountType:
        """Check name and type for a new account.

        Returns:
            Parsed account type

        Raises:
            ValidationError: If name is empty or type is unknown
            ConflictError: If account name already exists
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        try:
            parsed_type = AccountType(account_type)
        except ValueError:
            valid = ", ".join(t.value for t in AccountType)
            raise ValidationError(f"Unknown account type '{account_type}'. Valid types: {valid}")
        if self.db.get_account_by_name(name) is not None:
            raise ConflictError(f"Account with name '{name}' already exists")
        return parsed_type

    def create_account(
        self,
        name: str,
        account_type: str,
        description: Optional[str] = None,
        **metadata: Optional[str],
    ) -> str:
        """Create an account with a zero opening balance.

        Accounts that start with money go through
        ``TransactionOrchestrator.create_account_with_opening_balance``.

        Args:
            name: Account name, unique per organization
            account_type: Cash, Bank or Mobile Money
            description: Optional description
            **metadata: Bank or mobile money fields (bank_name, bank_branch,
                account_number, bank_account_type, network, number)

        Returns:
            Account ID
        """
        parsed_type = self.validate_new_account(name, account_type)
        return self.db.create_account(
            name=name,
            account_type=parsed_type.value,
            description=description,
            **metadata,
        )

    def get_account(self, account_id: str) -> Optional[AccountEntity]:
        """Get account by ID."""
        return self.db.get_account(account_id)

    def get_account_by_name(self, name: str) -> Optional[AccountEntity]:
        """Get account by name."""
        return self.db.get_account_by_name(name)

    def require_account(self, account_id: str) -> AccountEntity:
        """Get account by ID, raising EntityNotFound if it is missing."""
        account = self.db.get_account(account_id)
        if account is None:
            raise EntityNotFound("Account", account_id)
        return account

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts."""
        return self.db.list_accounts()

    def update_account(self, account_id: str, **fields: Optional[str]) -> None:
        """Update account metadata (name, description, bank or mobile money fields).

        Raises:
            EntityNotFound: If account not found
            ConflictError: If the new name is taken
            ValidationError: If a balance field is passed
        """
        for forbidden in ("balance", "opening_balance"):
            if forbidden in fields:
                raise ValidationError(f"Account {forbidden.replace('_', ' ')} cannot be edited directly")
        self.require_account(account_id)
        self.db.update_account(account_id, **fields)

    def delete_account(self, account_id: str) -> None:
        """Delete an account.

        Raises:
            EntityNotFound: If account not found
            DependencyError: If postings or reconciliations reference it
        """
        self.db.delete_account(account_id)
