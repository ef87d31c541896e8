"""Posting domain service (read side and balance-neutral edits)."""

from typing import Optional
from datetime import date

from orgledger.database.base import Database
from orgledger.domain.category import CategoryService
from orgledger.domain.entities import (
    CategoryType,
    EntryType,
    Posting,
    PostingKind,
    StatementLine,
)
from orgledger.domain.errors import (
    EntityNotFound,
    ValidationError,
    reconciled_posting_locked,
)


class PostingService:
    """Service for querying postings and editing their descriptive fields.

    Anything that changes an amount, or creates or deletes a posting, goes
    through the orchestrator so the ledger stays in step.
    """

    def __init__(self, db: Database):
        """Initialize posting service.

        Args:
            db: Database instance
        """
        self.db = db
        self.categories = CategoryService(db)

    def get_posting(self, posting_id: str) -> Optional[Posting]:
        """Get posting by ID."""
        return self.db.get_posting(posting_id)

    def require_posting(self, posting_id: str) -> Posting:
        """Get posting by ID, raising EntityNotFound if it is missing."""
        posting = self.db.get_posting(posting_id)
        if posting is None:
            raise EntityNotFound("Posting", posting_id)
        return posting

    def list_postings(
        self,
        account_id: Optional[str] = None,
        kind: Optional[PostingKind] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        is_reconciled: Optional[bool] = None,
        linked_liability_id: Optional[str] = None,
    ) -> list[Posting]:
        """List postings in commit order.

        Args:
            account_id: Optional account filter
            kind: Optional posting kind filter
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            category: Optional category name filter
            is_reconciled: Optional reconciled-flag filter
            linked_liability_id: Optional liability filter (payments of one liability)

        Returns:
            List of postings ordered by commit sequence
        """
        return self.db.list_postings(
            account_id=account_id,
            kind=kind,
            start_date=start_date,
            end_date=end_date,
            category=category,
            is_reconciled=is_reconciled,
            linked_liability_id=linked_liability_id,
        )

    def statement(self, account_id: str) -> list[StatementLine]:
        """Account statement with running balance in commit order.

        The running balance starts at the opening balance; opening-balance
        postings are listed but do not move it again.

        Raises:
            EntityNotFound: If account not found
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise EntityNotFound("Account", account_id)

        running = account.opening_balance
        lines = []
        for posting in self.db.list_postings(account_id=account_id):
            if posting.affects_balance:
                running += posting.amount
            lines.append(StatementLine(posting=posting, running_balance=running))
        return lines

    def ensure_mutable(self, posting: Posting) -> None:
        """Reject changes to a reconciled posting.

        Raises:
            ValidationError: If the posting is reconciled
        """
        if posting.is_reconciled:
            raise ValidationError(reconciled_posting_locked(posting.id))

    def validate_category(self, category: str, entry_type: EntryType) -> None:
        """Check that an income or expense category exists.

        Raises:
            NotFoundError: If the category does not exist for that side
        """
        category_type = CategoryType.INCOME if entry_type == EntryType.INCOME else CategoryType.EXPENSE
        self.categories.require_category(category, category_type)

    def update_posting_details(
        self,
        posting_id: str,
        date: Optional[date] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Posting:
        """Edit fields that do not affect any balance.

        Raises:
            EntityNotFound: If posting not found
            ValidationError: If the posting is reconciled, or a system posting's category is changed
        """
        posting = self.require_posting(posting_id)
        self.ensure_mutable(posting)
        if category is not None and category != posting.category:
            if posting.kind not in (PostingKind.INCOME, PostingKind.EXPENDITURE) or posting.linked_liability_id:
                raise ValidationError(f"Category of {posting.kind.value} posting {posting_id} cannot be changed")
            self.validate_category(category, posting.entry_type)

        self.db.update_posting(
            posting_id, date=date, category=category, description=description, reference=reference
        )
        return self.require_posting(posting_id)
