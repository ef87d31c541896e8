"""Abstract database interface.

Every mutating method commits exactly one row-level change. Multi-row
consistency is never assumed from the store; the orchestrator sequences and
compensates multi-step writes.
"""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date
from decimal import Decimal

from orgledger.domain.entities import (
    Account,
    Budget,
    Category,
    EntryType,
    Liability,
    OperationRecord,
    Posting,
    PostingKind,
    Reconciliation,
    Transfer,
)


class Database(ABC):
    """Abstract database interface for orgledger, bound to one organization."""

    organization_id: str

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes left by a failed write.

        Every write commits on its own, so this only matters after an error
        and leaves the store usable for the next call.
        """
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        account_type: str,
        opening_balance: int = 0,
        description: Optional[str] = None,
        bank_name: Optional[str] = None,
        bank_branch: Optional[str] = None,
        account_number: Optional[str] = None,
        bank_account_type: Optional[str] = None,
        network: Optional[str] = None,
        number: Optional[str] = None,
    ) -> str:
        """Create an account whose balance starts at its opening balance. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_name(self, name: str) -> Optional[Account]:
        """Get account by name."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        bank_name: Optional[str] = None,
        bank_branch: Optional[str] = None,
        account_number: Optional[str] = None,
        bank_account_type: Optional[str] = None,
        network: Optional[str] = None,
        number: Optional[str] = None,
    ) -> None:
        """Update account metadata. Balances are not updatable here."""
        pass

    @abstractmethod
    def delete_account(self, account_id: str) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def adjust_account_balance(self, account_id: str, delta: int) -> bool:
        """Atomically add ``delta`` to an account balance.

        For a negative delta the update only applies when the balance at commit
        time covers it. Returns False when that guard rejected the update.
        """
        pass

    @abstractmethod
    def recalculate_account_balance(self, account_id: str) -> int:
        """Set balance to opening balance plus the sum of ledger postings. Returns new balance."""
        pass

    @abstractmethod
    def sum_account_postings(self, account_id: str) -> int:
        """Sum of ledger postings (opening-balance postings excluded) for an account."""
        pass

    @abstractmethod
    def get_account_posting_count(self, account_id: str) -> int:
        """Get count of postings against an account."""
        pass

    @abstractmethod
    def get_account_reconciliation_count(self, account_id: str) -> int:
        """Get count of reconciliations for an account."""
        pass

    # Posting operations
    @abstractmethod
    def create_posting(
        self,
        account_id: str,
        kind: PostingKind,
        amount: int,
        date: date,
        category: str,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        member_id: Optional[str] = None,
        member_name: Optional[str] = None,
        linked_liability_id: Optional[str] = None,
        transfer_id: Optional[str] = None,
        added_in_reconciliation_id: Optional[str] = None,
    ) -> str:
        """Create a posting. Returns posting ID."""
        pass

    @abstractmethod
    def get_posting(self, posting_id: str) -> Optional[Posting]:
        """Get posting by ID."""
        pass

    @abstractmethod
    def list_postings(
        self,
        account_id: Optional[str] = None,
        kind: Optional[PostingKind] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        linked_liability_id: Optional[str] = None,
        transfer_id: Optional[str] = None,
        is_reconciled: Optional[bool] = None,
    ) -> list[Posting]:
        """List postings in commit order with optional filters."""
        pass

    @abstractmethod
    def update_posting(
        self,
        posting_id: str,
        amount: Optional[int] = None,
        date: Optional[date] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> None:
        """Update posting fields."""
        pass

    @abstractmethod
    def set_posting_liability(self, posting_id: str, liability_id: Optional[str]) -> None:
        """Link a posting to a liability, or unlink it with None."""
        pass

    @abstractmethod
    def set_posting_reconciliation(self, posting_id: str, reconciliation_id: Optional[str]) -> None:
        """Mark a posting reconciled in a reconciliation, or unmark it with None."""
        pass

    @abstractmethod
    def delete_posting(self, posting_id: str) -> None:
        """Delete a posting."""
        pass

    @abstractmethod
    def sum_liability_payments(self, liability_id: str) -> int:
        """Total paid towards a liability by its linked postings (positive)."""
        pass

    # Liability operations
    @abstractmethod
    def create_liability(
        self,
        date: date,
        category: str,
        description: str,
        creditor: str,
        original_amount: int,
        amount_paid: int,
        balance: int,
        status: str,
        is_loan: bool = False,
        interest_rate: Optional[Decimal] = None,
        loan_start_date: Optional[date] = None,
        loan_end_date: Optional[date] = None,
        loan_duration_days: Optional[int] = None,
        amount_received: Optional[int] = None,
    ) -> str:
        """Create a liability. Returns liability ID."""
        pass

    @abstractmethod
    def get_liability(self, liability_id: str) -> Optional[Liability]:
        """Get liability by ID."""
        pass

    @abstractmethod
    def list_liabilities(
        self, is_loan: Optional[bool] = None, status: Optional[str] = None
    ) -> list[Liability]:
        """List liabilities, newest first."""
        pass

    @abstractmethod
    def update_liability(
        self,
        liability_id: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
        creditor: Optional[str] = None,
        original_amount: Optional[int] = None,
        amount_paid: Optional[int] = None,
        balance: Optional[int] = None,
        status: Optional[str] = None,
        linked_income_posting_id: Optional[str] = None,
    ) -> None:
        """Update liability fields."""
        pass

    @abstractmethod
    def delete_liability(self, liability_id: str) -> None:
        """Delete a liability."""
        pass

    # Transfer operations
    @abstractmethod
    def create_transfer(
        self,
        date: date,
        from_account_id: str,
        from_account_name: str,
        to_account_id: str,
        to_account_name: str,
        amount: int,
        description: Optional[str] = None,
    ) -> str:
        """Create a transfer record. Returns transfer ID."""
        pass

    @abstractmethod
    def get_transfer(self, transfer_id: str) -> Optional[Transfer]:
        """Get transfer by ID."""
        pass

    @abstractmethod
    def list_transfers(self, account_id: Optional[str] = None) -> list[Transfer]:
        """List transfers, optionally touching one account."""
        pass

    @abstractmethod
    def delete_transfer(self, transfer_id: str) -> None:
        """Delete a transfer record."""
        pass

    # Reconciliation operations
    @abstractmethod
    def create_reconciliation(
        self,
        account_id: str,
        account_name: str,
        date: date,
        book_balance: int,
        bank_balance: int,
        difference: int,
        status: str,
        notes: Optional[str] = None,
    ) -> str:
        """Create a reconciliation. Returns reconciliation ID."""
        pass

    @abstractmethod
    def get_reconciliation(self, reconciliation_id: str) -> Optional[Reconciliation]:
        """Get reconciliation by ID with its entry sets."""
        pass

    @abstractmethod
    def list_reconciliations(self, account_id: Optional[str] = None) -> list[Reconciliation]:
        """List reconciliations, newest first."""
        pass

    @abstractmethod
    def update_reconciliation(
        self,
        reconciliation_id: str,
        book_balance: Optional[int] = None,
        bank_balance: Optional[int] = None,
        difference: Optional[int] = None,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Update reconciliation fields."""
        pass

    @abstractmethod
    def add_reconciled_entry(
        self, reconciliation_id: str, posting_id: str, entry_type: EntryType
    ) -> None:
        """Add a posting to a reconciliation's reconciled set."""
        pass

    @abstractmethod
    def remove_reconciled_entry(self, reconciliation_id: str, posting_id: str) -> None:
        """Remove a posting from a reconciliation's reconciled set."""
        pass

    @abstractmethod
    def delete_reconciliation(self, reconciliation_id: str) -> None:
        """Delete a reconciliation and its reconciled-set rows."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        category_type: str,
        description: Optional[str] = None,
        track_members: bool = False,
    ) -> str:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str, category_type: str) -> Optional[Category]:
        """Get category by name within a type."""
        pass

    @abstractmethod
    def list_categories(self, category_type: Optional[str] = None) -> list[Category]:
        """List categories, optionally filtered by type."""
        pass

    @abstractmethod
    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        track_members: Optional[bool] = None,
    ) -> None:
        """Update category fields."""
        pass

    @abstractmethod
    def delete_category(self, category_id: str) -> None:
        """Delete a category."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget(self, category: str, period: str, budgeted: int) -> str:
        """Create a budget. Returns budget ID.

        Raises:
            ConflictError: If the category already has a budget for the period
        """
        pass

    @abstractmethod
    def get_budget(self, budget_id: str) -> Optional[Budget]:
        """Get budget by ID."""
        pass

    @abstractmethod
    def list_budgets(
        self, period: Optional[str] = None, category: Optional[str] = None
    ) -> list[Budget]:
        """List budgets, newest period first and by category within a period."""
        pass

    @abstractmethod
    def update_budget(
        self,
        budget_id: str,
        category: Optional[str] = None,
        period: Optional[str] = None,
        budgeted: Optional[int] = None,
    ) -> None:
        """Update budget fields."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: str) -> None:
        """Delete a budget."""
        pass

    @abstractmethod
    def sum_category_expenditure(self, category: str, start_date: date, end_date: date) -> int:
        """Total spent (a positive amount) by expenditure postings in a category and date range."""
        pass

    # Idempotency log
    @abstractmethod
    def get_operation(self, key: str) -> Optional[OperationRecord]:
        """Get a completed recipe by idempotency key."""
        pass

    @abstractmethod
    def record_operation(self, key: str, recipe: str, result_id: str) -> None:
        """Record a completed recipe under its idempotency key."""
        pass
