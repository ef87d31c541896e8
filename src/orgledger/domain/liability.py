"""Liability tracker.

A liability's ``amount_paid``, ``balance`` and ``status`` are derived from the
expenditure postings linked to it. Once a liability has a linked payment those
fields are only ever recomputed from the payment set, never set by hand.
"""

import logging
from typing import Optional
from datetime import date
from decimal import Decimal

from orgledger.database.base import Database
from orgledger.domain.category import CategoryService
from orgledger.domain.entities import CategoryType, Liability, LiabilityStatus
from orgledger.domain.errors import (
    ConsistencyViolation,
    DependencyError,
    EntityNotFound,
    OverpaymentError,
    ValidationError,
)
from orgledger.domain.ledger import validate_amount
from orgledger.domain.posting import PostingService

logger = logging.getLogger(__name__)


def derive_status(original_amount: int, balance: int) -> LiabilityStatus:
    """Status for a liability balance.

    balance == 0 is Paid, balance == original is Not Paid, anything between
    is Partially Paid.
    """
    if balance <= 0:
        return LiabilityStatus.PAID
    if balance >= original_amount:
        return LiabilityStatus.NOT_PAID
    return LiabilityStatus.PARTIALLY_PAID


class LiabilityService:
    """Service for liabilities and the payments linked to them."""

    def __init__(self, db: Database):
        """Initialize liability service.

        Args:
            db: Database instance
        """
        self.db = db
        self.categories = CategoryService(db)
        self.postings = PostingService(db)

    def validate_new_liability(
        self, category: str, description: str, creditor: str, original_amount: int
    ) -> None:
        """Validate liability fields before anything is written.

        Raises:
            ValidationError: If a required field is missing or the amount is not positive
            NotFoundError: If the liability category does not exist
        """
        if not description or not description.strip():
            raise ValidationError("Liability description is required")
        if not creditor or not creditor.strip():
            raise ValidationError("Creditor is required")
        validate_amount(original_amount)
        self.categories.require_category(category, CategoryType.LIABILITY)

    def create_liability(
        self,
        date: date,
        category: str,
        description: str,
        creditor: str,
        original_amount: int,
        is_loan: bool = False,
        interest_rate: Optional[Decimal] = None,
        loan_start_date: Optional[date] = None,
        loan_end_date: Optional[date] = None,
        amount_received: Optional[int] = None,
    ) -> str:
        """Create a liability with nothing paid.

        Returns:
            Liability ID
        """
        self.validate_new_liability(category, description, creditor, original_amount)
        duration = None
        if loan_start_date is not None and loan_end_date is not None:
            if loan_end_date < loan_start_date:
                raise ValidationError("Loan end date cannot be before its start date")
            duration = (loan_end_date - loan_start_date).days

        return self.db.create_liability(
            date=date,
            category=category,
            description=description,
            creditor=creditor,
            original_amount=original_amount,
            amount_paid=0,
            balance=original_amount,
            status=LiabilityStatus.NOT_PAID.value,
            is_loan=is_loan,
            interest_rate=interest_rate,
            loan_start_date=loan_start_date,
            loan_end_date=loan_end_date,
            loan_duration_days=duration,
            amount_received=amount_received,
        )

    def get_liability(self, liability_id: str) -> Optional[Liability]:
        """Get liability by ID."""
        return self.db.get_liability(liability_id)

    def require_liability(self, liability_id: str) -> Liability:
        """Get liability by ID, raising EntityNotFound if it is missing."""
        liability = self.db.get_liability(liability_id)
        if liability is None:
            raise EntityNotFound("Liability", liability_id)
        return liability

    def list_liabilities(
        self, is_loan: Optional[bool] = None, status: Optional[str] = None
    ) -> list[Liability]:
        """List liabilities, newest first."""
        if status is not None:
            status = LiabilityStatus(status).value
        return self.db.list_liabilities(is_loan=is_loan, status=status)

    def check_payment(
        self, liability_id: str, amount: int, exclude_posting_id: Optional[str] = None
    ) -> Liability:
        """Reject a payment that would take amount paid past the original amount.

        Args:
            liability_id: Liability being paid
            amount: Payment in minor units
            exclude_posting_id: Posting already linked that is being re-counted

        Raises:
            OverpaymentError: If the payment exceeds the outstanding balance
        """
        liability = self.require_liability(liability_id)
        paid = self.db.sum_liability_payments(liability_id)
        if exclude_posting_id is not None:
            posting = self.db.get_posting(exclude_posting_id)
            if posting is not None and posting.linked_liability_id == liability_id:
                paid += posting.amount
        outstanding = liability.original_amount - paid
        if amount > outstanding:
            raise OverpaymentError(liability_id, amount, outstanding)
        return liability

    def record_payment(self, liability_id: str, posting_id: str, amount: int) -> Liability:
        """Link an expenditure posting to a liability as a payment.

        Args:
            liability_id: Liability being paid
            posting_id: Expenditure posting carrying the payment
            amount: Payment in minor units; must equal the posting's magnitude

        Returns:
            Liability with recomputed derived fields

        Raises:
            EntityNotFound: If liability or posting not found
            ValidationError: If the posting is not a debit of ``amount``, is reconciled,
                or belongs to another liability
            OverpaymentError: If the payment exceeds the outstanding balance
        """
        validate_amount(amount)
        posting = self.db.get_posting(posting_id)
        if posting is None:
            raise EntityNotFound("Posting", posting_id)
        self.postings.ensure_mutable(posting)
        if posting.amount != -amount:
            raise ValidationError(
                f"Payment amount {amount} does not match posting {posting_id} amount {-posting.amount}"
            )
        if posting.linked_liability_id not in (None, liability_id):
            raise ValidationError(
                f"Posting {posting_id} already pays liability {posting.linked_liability_id}"
            )

        self.check_payment(liability_id, amount, exclude_posting_id=posting_id)
        if posting.linked_liability_id != liability_id:
            self.db.set_posting_liability(posting_id, liability_id)
        return self._write_derived(liability_id, self.db.sum_liability_payments(liability_id))

    def unlink_payment(self, liability_id: str, posting_id: str) -> Liability:
        """Detach a payment posting from its liability and recompute.

        Raises:
            EntityNotFound: If liability or posting not found
            ValidationError: If the posting does not pay this liability or is reconciled
        """
        self.require_liability(liability_id)
        posting = self.db.get_posting(posting_id)
        if posting is None:
            raise EntityNotFound("Posting", posting_id)
        if posting.linked_liability_id != liability_id:
            raise ValidationError(f"Posting {posting_id} is not a payment of liability {liability_id}")
        self.postings.ensure_mutable(posting)

        self.db.set_posting_liability(posting_id, None)
        return self._write_derived(liability_id, self.db.sum_liability_payments(liability_id))

    def payments(self, liability_id: str):
        """Payment postings of a liability in commit order."""
        return self.db.list_postings(linked_liability_id=liability_id)

    def expected_amount_paid(self, liability_id: str) -> int:
        """Amount paid as the payment set says it should be.

        Without any payments the stored amount is the only input and is kept.
        """
        liability = self.require_liability(liability_id)
        if not self.payments(liability_id):
            return liability.amount_paid
        return self.db.sum_liability_payments(liability_id)

    def recompute(self, liability_id: str) -> Liability:
        """Re-derive amount paid, balance and status; writes only on change."""
        return self._write_derived(liability_id, self.expected_amount_paid(liability_id))

    def verify(self, liability_id: str) -> Liability:
        """Return the liability, healing derived fields first if they drifted."""
        liability = self.require_liability(liability_id)
        expected_paid = self.expected_amount_paid(liability_id)
        expected_balance = liability.original_amount - expected_paid
        expected_status = derive_status(liability.original_amount, expected_balance)

        drifted = [
            (field, stored, expected)
            for field, stored, expected in (
                ("amount_paid", liability.amount_paid, expected_paid),
                ("balance", liability.balance, expected_balance),
                ("status", liability.status, expected_status),
            )
            if stored != expected
        ]
        if not drifted:
            return liability

        for field, stored, expected in drifted:
            logger.warning("%s; recomputing", ConsistencyViolation("Liability", liability_id, field, stored, expected))
        return self._write_derived(liability_id, expected_paid)

    def update_liability(
        self,
        liability_id: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
        creditor: Optional[str] = None,
        original_amount: Optional[int] = None,
        amount_paid: Optional[int] = None,
    ) -> Liability:
        """Edit a liability's inputs.

        ``amount_paid`` may only be entered by hand while no payment posting is
        linked; afterwards payments are the only way to change it. Status is
        never settable.

        Raises:
            EntityNotFound: If liability not found
            ValidationError: If an edit would break the derived-field rules
        """
        liability = self.require_liability(liability_id)

        if amount_paid is not None and amount_paid != liability.amount_paid:
            if self.payments(liability_id):
                raise ValidationError(
                    "Amount paid cannot be edited once payments are recorded. "
                    "Add or remove payment entries instead."
                )
            if amount_paid < 0:
                raise ValidationError("Amount paid cannot be negative")

        if category is not None:
            self.categories.require_category(category, CategoryType.LIABILITY)

        new_original = original_amount if original_amount is not None else liability.original_amount
        new_paid = amount_paid if amount_paid is not None else liability.amount_paid
        if original_amount is not None:
            validate_amount(original_amount)
        if new_paid > new_original:
            raise ValidationError(
                f"Amount paid {new_paid} cannot exceed the original amount {new_original}"
            )

        self.db.update_liability(
            liability_id,
            category=category,
            description=description,
            creditor=creditor,
            original_amount=original_amount,
        )
        return self._write_derived(liability_id, new_paid)

    def delete_liability(self, liability_id: str) -> None:
        """Delete a liability with no linked payments.

        Raises:
            EntityNotFound: If liability not found
            DependencyError: If payment postings are still linked
        """
        self.require_liability(liability_id)
        count = len(self.payments(liability_id))
        if count:
            raise DependencyError(
                f"Cannot delete liability {liability_id}: it has {count} "
                f"payment{'s' if count != 1 else ''}. Please delete them first."
            )
        self.db.delete_liability(liability_id)

    def _write_derived(self, liability_id: str, amount_paid: int) -> Liability:
        liability = self.require_liability(liability_id)
        balance = liability.original_amount - amount_paid
        status = derive_status(liability.original_amount, balance)

        if (
            liability.amount_paid == amount_paid
            and liability.balance == balance
            and liability.status == status
        ):
            return liability

        self.db.update_liability(
            liability_id, amount_paid=amount_paid, balance=balance, status=status.value
        )
        logger.debug(
            "Liability %s: paid %s, balance %s, status %s", liability_id, amount_paid, balance, status.value
        )
        return self.require_liability(liability_id)
