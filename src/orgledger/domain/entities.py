"""Domain model entities for orgledger.

These are pure data classes representing business concepts, independent of
database schema. All money values are integer minor units (pesewas/cents).
"""

from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountType(str, Enum):
    """Kinds of account an organization can hold money in."""

    CASH = "Cash"
    BANK = "Bank"
    MOBILE_MONEY = "Mobile Money"


class BankAccountType(str, Enum):
    SAVINGS = "Savings"
    CURRENT = "Current Account"
    FOREIGN = "Foreign Account"


class MobileNetwork(str, Enum):
    MTN = "MTN"
    TELECEL = "Telecel"
    AIRTEL_TIGO = "Airtel Tigo"


class PostingKind(str, Enum):
    """Origin of a posting.

    ``OPENING_BALANCE`` postings document an account's opening balance. Their
    effect already lives in ``Account.opening_balance``, so ledger sums skip
    them.
    """

    INCOME = "income"
    EXPENDITURE = "expenditure"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    OPENING_BALANCE = "opening_balance"


class EntryType(str, Enum):
    """Side of a posting as seen by a reconciliation."""

    INCOME = "income"
    EXPENDITURE = "expenditure"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    LIABILITY = "liability"


class LiabilityStatus(str, Enum):
    NOT_PAID = "Not Paid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"


class ReconciliationStatus(str, Enum):
    PENDING = "Pending"
    RECONCILED = "Reconciled"


@dataclass(frozen=True)
class Account:
    """Money-holding account domain entity."""

    id: str
    name: str
    account_type: AccountType
    balance: int
    opening_balance: int
    created_at: datetime
    description: Optional[str] = None
    bank_name: Optional[str] = None
    bank_branch: Optional[str] = None
    account_number: Optional[str] = None
    bank_account_type: Optional[BankAccountType] = None
    network: Optional[MobileNetwork] = None
    number: Optional[str] = None


@dataclass(frozen=True)
class Posting:
    """A single signed monetary entry against an account."""

    id: str
    account_id: str
    kind: PostingKind
    amount: int
    date: date
    category: str
    sequence: int
    created_at: datetime
    description: Optional[str] = None
    reference: Optional[str] = None
    member_id: Optional[str] = None
    member_name: Optional[str] = None
    linked_liability_id: Optional[str] = None
    transfer_id: Optional[str] = None
    reconciliation_id: Optional[str] = None
    is_reconciled: bool = False
    added_in_reconciliation_id: Optional[str] = None

    @property
    def entry_type(self) -> EntryType:
        """Income for credits, expenditure for debits."""
        return EntryType.INCOME if self.amount > 0 else EntryType.EXPENDITURE

    @property
    def affects_balance(self) -> bool:
        return self.kind != PostingKind.OPENING_BALANCE


@dataclass(frozen=True)
class Liability:
    """Amount owed to a creditor, paid down by linked expenditure postings."""

    id: str
    date: date
    category: str
    description: str
    creditor: str
    original_amount: int
    amount_paid: int
    balance: int
    status: LiabilityStatus
    created_at: datetime
    is_loan: bool = False
    linked_income_posting_id: Optional[str] = None
    interest_rate: Optional[Decimal] = None
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    loan_duration_days: Optional[int] = None
    amount_received: Optional[int] = None


@dataclass(frozen=True)
class Transfer:
    """Movement of money between two accounts of the same organization."""

    id: str
    date: date
    from_account_id: str
    from_account_name: str
    to_account_id: str
    to_account_name: str
    amount: int
    created_at: datetime
    description: Optional[str] = None


@dataclass(frozen=True)
class Reconciliation:
    """Comparison of an account's book balance against its bank balance."""

    id: str
    account_id: str
    account_name: str
    date: date
    book_balance: int
    bank_balance: int
    difference: int
    status: ReconciliationStatus
    created_at: datetime
    notes: Optional[str] = None
    reconciled_income_entries: frozenset[str] = frozenset()
    reconciled_expenditure_entries: frozenset[str] = frozenset()
    added_income_entries: frozenset[str] = frozenset()
    added_expenditure_entries: frozenset[str] = frozenset()

    def reconciled_entries(self, entry_type: EntryType) -> frozenset[str]:
        if entry_type == EntryType.INCOME:
            return self.reconciled_income_entries
        return self.reconciled_expenditure_entries


@dataclass(frozen=True)
class Category:
    """Finance category domain entity."""

    id: str
    name: str
    category_type: CategoryType
    created_at: datetime
    description: Optional[str] = None
    track_members: bool = False


@dataclass(frozen=True)
class Budget:
    """Spending limit for an expense category over a period.

    ``period`` is a year ("2024"), a month ("2024-03") or a quarter
    ("2024-Q1"). ``spent`` is derived from expenditure postings and is not
    stored.
    """

    id: str
    category: str
    period: str
    budgeted: int
    created_at: datetime
    updated_at: datetime
    spent: int = 0

    @property
    def remaining(self) -> int:
        return self.budgeted - self.spent

    @property
    def percent_used(self) -> Decimal:
        if self.budgeted == 0:
            return Decimal(0) if self.spent == 0 else Decimal(100)
        return (Decimal(self.spent) * 100 / Decimal(self.budgeted)).quantize(Decimal("0.1"))

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.budgeted


@dataclass(frozen=True)
class OperationRecord:
    """Completed orchestrator recipe keyed by caller-supplied idempotency key."""

    key: str
    recipe: str
    result_id: str
    created_at: datetime


@dataclass(frozen=True)
class BalanceCheck:
    """Result of comparing or recomputing an account balance."""

    account_id: str
    account_name: str
    stored_balance: int
    expected_balance: int

    @property
    def drift(self) -> int:
        return self.stored_balance - self.expected_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


@dataclass(frozen=True)
class StatementLine:
    """Posting with the running balance after it was applied."""

    posting: Posting
    running_balance: int


@dataclass(frozen=True)
class FinanceOverview:
    """Organization-wide totals for a period."""

    total_balance: int
    total_income: int
    total_expenditure: int
    outstanding_liabilities: int
    account_count: int

    @property
    def net_income(self) -> int:
        return self.total_income - self.total_expenditure
