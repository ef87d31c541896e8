"""Reconciliation engine.

A reconciliation compares an account's book balance (its live ledger
balance) with the balance the bank reports, and tracks which postings have
been matched against the statement. ``book_balance``, ``difference`` and
``status`` are derived and recomputed on every read and after every write;
a recompute that would store the same values writes nothing.

A reconciliation is Reconciled when the difference is zero and every posting
attributable to it is in one of its reconciled sets. Postings already
reconciled by another reconciliation of the same account are not
attributable.
"""

import logging
from typing import Optional
from datetime import date as date_type

from orgledger.database.base import Database
from orgledger.domain.entities import (
    Account,
    EntryType,
    Posting,
    Reconciliation,
    ReconciliationStatus,
)
from orgledger.domain.errors import EntityNotFound, ValidationError
from orgledger.domain.ledger import LedgerService
from orgledger.domain.orchestrator import TransactionOrchestrator

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Service for bank reconciliations."""

    def __init__(self, db: Database, orchestrator: Optional[TransactionOrchestrator] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            orchestrator: Orchestrator used to record entries found during a session
        """
        self.db = db
        self.ledger = LedgerService(db)
        self.orchestrator = orchestrator or TransactionOrchestrator(db)

    def _require(self, reconciliation_id: str) -> Reconciliation:
        reconciliation = self.db.get_reconciliation(reconciliation_id)
        if reconciliation is None:
            raise EntityNotFound("Reconciliation", reconciliation_id)
        return reconciliation

    def _require_account(self, account_id: str) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise EntityNotFound("Account", account_id)
        return account

    def attributable_postings(
        self, account_id: str, reconciliation_id: Optional[str] = None
    ) -> list[Posting]:
        """Postings a reconciliation of ``account_id`` has to account for.

        Opening-balance postings are excluded; their amount is part of the
        account's opening balance rather than a statement line.
        """
        return [
            p
            for p in self.db.list_postings(account_id=account_id)
            if p.affects_balance and p.reconciliation_id in (None, reconciliation_id)
        ]

    def _derive(
        self,
        account_id: str,
        bank_balance: int,
        reconciled: frozenset[str],
        reconciliation_id: Optional[str] = None,
    ) -> tuple[int, int, ReconciliationStatus]:
        book_balance = self.ledger.verify(account_id).balance
        difference = bank_balance - book_balance
        all_matched = all(
            p.id in reconciled for p in self.attributable_postings(account_id, reconciliation_id)
        )
        if difference == 0 and all_matched:
            return book_balance, difference, ReconciliationStatus.RECONCILED
        return book_balance, difference, ReconciliationStatus.PENDING

    def create(
        self,
        account_id: str,
        bank_balance: int,
        date: Optional[date_type] = None,
        notes: Optional[str] = None,
    ) -> Reconciliation:
        """Start a reconciliation against the account's current book balance.

        Args:
            account_id: Account being reconciled
            bank_balance: Balance on the bank statement, in minor units
            date: Statement date (defaults to today)
            notes: Optional notes

        Returns:
            The new reconciliation; Reconciled straight away only when the
            balances agree and the account has nothing left to match
        """
        if isinstance(bank_balance, bool) or not isinstance(bank_balance, int):
            raise ValidationError("Bank balance must be an integer number of minor units")
        account = self._require_account(account_id)
        book_balance, difference, status = self._derive(account_id, bank_balance, frozenset())

        reconciliation_id = self.db.create_reconciliation(
            account_id=account_id,
            account_name=account.name,
            date=date or date_type.today(),
            book_balance=book_balance,
            bank_balance=bank_balance,
            difference=difference,
            status=status.value,
            notes=notes,
        )
        logger.info(
            "Created reconciliation %s for account %s: book %s, bank %s, %s",
            reconciliation_id,
            account_id,
            book_balance,
            bank_balance,
            status.value,
        )
        return self._require(reconciliation_id)

    def refresh(self, reconciliation_id: str) -> Reconciliation:
        """Recompute book balance, difference and status from committed data.

        Writes only when a derived value changed, so calling it repeatedly
        without an underlying change is a no-op.
        """
        reconciliation = self._require(reconciliation_id)
        reconciled = (
            reconciliation.reconciled_income_entries | reconciliation.reconciled_expenditure_entries
        )
        book_balance, difference, status = self._derive(
            reconciliation.account_id, reconciliation.bank_balance, reconciled, reconciliation_id
        )

        if (
            reconciliation.book_balance == book_balance
            and reconciliation.difference == difference
            and reconciliation.status == status
        ):
            return reconciliation

        self.db.update_reconciliation(
            reconciliation_id,
            book_balance=book_balance,
            difference=difference,
            status=status.value,
        )
        logger.debug(
            "Reconciliation %s: book %s, difference %s, %s",
            reconciliation_id,
            book_balance,
            difference,
            status.value,
        )
        return self._require(reconciliation_id)

    def get_reconciliation(self, reconciliation_id: str) -> Reconciliation:
        """Get a reconciliation, recomputed against the latest data."""
        return self.refresh(reconciliation_id)

    def list_reconciliations(self, account_id: Optional[str] = None) -> list[Reconciliation]:
        """List reconciliations, newest first, each recomputed."""
        return [self.refresh(r.id) for r in self.db.list_reconciliations(account_id=account_id)]

    def update_bank_balance(
        self, reconciliation_id: str, bank_balance: int, notes: Optional[str] = None
    ) -> Reconciliation:
        """Change the statement balance (and optionally notes) and recompute."""
        if isinstance(bank_balance, bool) or not isinstance(bank_balance, int):
            raise ValidationError("Bank balance must be an integer number of minor units")
        self._require(reconciliation_id)
        self.db.update_reconciliation(reconciliation_id, bank_balance=bank_balance, notes=notes)
        return self.refresh(reconciliation_id)

    def _mark(self, reconciliation_id: str, posting: Posting) -> None:
        self.db.add_reconciled_entry(reconciliation_id, posting.id, posting.entry_type)
        self.db.set_posting_reconciliation(posting.id, reconciliation_id)

    def _unmark(self, reconciliation_id: str, posting_id: str) -> None:
        self.db.remove_reconciled_entry(reconciliation_id, posting_id)
        posting = self.db.get_posting(posting_id)
        if posting is not None and posting.reconciliation_id == reconciliation_id:
            self.db.set_posting_reconciliation(posting_id, None)

    def toggle_entry_reconciled(self, reconciliation_id: str, posting_id: str) -> Reconciliation:
        """Flip whether a posting is matched in this reconciliation.

        Raises:
            EntityNotFound: If reconciliation or posting not found
            ValidationError: If the posting belongs to another account, is an
                opening balance, or is reconciled elsewhere
        """
        reconciliation = self._require(reconciliation_id)
        posting = self.db.get_posting(posting_id)
        if posting is None:
            raise EntityNotFound("Posting", posting_id)
        if posting.account_id != reconciliation.account_id:
            raise ValidationError(
                f"Posting {posting_id} does not belong to account {reconciliation.account_name}"
            )
        if not posting.affects_balance:
            raise ValidationError("Opening balance postings are not reconciled")
        if posting.reconciliation_id not in (None, reconciliation_id):
            raise ValidationError(
                f"Posting {posting_id} is already reconciled in reconciliation {posting.reconciliation_id}"
            )

        if posting.id in reconciliation.reconciled_entries(posting.entry_type):
            self._unmark(reconciliation_id, posting.id)
        else:
            self._mark(reconciliation_id, posting)
        return self.refresh(reconciliation_id)

    def select_all(
        self, reconciliation_id: str, entry_type: EntryType, reconciled: bool
    ) -> Reconciliation:
        """Mark or unmark every attributable posting of one entry type."""
        entry_type = EntryType(entry_type)
        reconciliation = self._require(reconciliation_id)
        current = reconciliation.reconciled_entries(entry_type)

        for posting in self.attributable_postings(reconciliation.account_id, reconciliation_id):
            if posting.entry_type != entry_type:
                continue
            if reconciled and posting.id not in current:
                self._mark(reconciliation_id, posting)
            elif not reconciled and posting.id in current:
                self._unmark(reconciliation_id, posting.id)
        return self.refresh(reconciliation_id)

    def add_entry_during_session(
        self,
        reconciliation_id: str,
        entry_type: EntryType,
        amount: int,
        category: str,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Reconciliation:
        """Record income or an expense discovered while reconciling.

        The posting goes through the orchestrator, so its ledger effect is
        applied at once. It is tagged as added in this session and starts
        unmatched.
        """
        entry_type = EntryType(entry_type)
        reconciliation = self._require(reconciliation_id)
        kwargs = dict(
            account_id=reconciliation.account_id,
            amount=amount,
            category=category,
            date=date or reconciliation.date,
            description=description,
            reference=reference,
            added_in_reconciliation_id=reconciliation_id,
            idempotency_key=idempotency_key,
        )
        if entry_type == EntryType.INCOME:
            posting_id = self.orchestrator.record_income(**kwargs)
        else:
            posting_id = self.orchestrator.record_expenditure(**kwargs)
        logger.info("Reconciliation %s: added %s posting %s", reconciliation_id, entry_type.value, posting_id)
        return self.refresh(reconciliation_id)

    def delete(self, reconciliation_id: str) -> None:
        """Delete a reconciliation and unmark the postings it matched.

        Postings added during the session are kept with their ledger effect.
        """
        reconciliation = self._require(reconciliation_id)
        matched = (
            reconciliation.reconciled_income_entries | reconciliation.reconciled_expenditure_entries
        )
        for posting_id in matched:
            posting = self.db.get_posting(posting_id)
            if posting is not None and posting.reconciliation_id == reconciliation_id:
                self.db.set_posting_reconciliation(posting_id, None)
        self.db.delete_reconciliation(reconciliation_id)
        logger.info(
            "Deleted reconciliation %s; unmarked %d posting(s), kept %d added posting(s)",
            reconciliation_id,
            len(matched),
            len(reconciliation.added_income_entries | reconciliation.added_expenditure_entries),
        )
