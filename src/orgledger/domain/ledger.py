"""Balance ledger: the only writer of account balances.

An account balance always equals its opening balance plus the sum of its
ledger postings. Credits and debits are single-row atomic updates; the store
re-checks funds for a debit at commit time, so a debit never lands on a stale
read. ``recalculate`` rebuilds the balance from postings in one statement and
is the self-heal path for drift left behind by an interrupted multi-step write.
"""

import logging

from orgledger.database.base import Database
from orgledger.domain.entities import Account, BalanceCheck, Posting
from orgledger.domain.errors import (
    ConsistencyViolation,
    EntityNotFound,
    InsufficientFunds,
    ValidationError,
)

logger = logging.getLogger(__name__)


def validate_amount(amount: int) -> int:
    """Require a positive integer amount in minor units.

    Raises:
        ValidationError: If amount is not a positive int
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be an integer number of minor units, got {amount!r}")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


class LedgerService:
    """Credit, debit, reverse and recalculate account balances."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_account(self, account_id: str) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise EntityNotFound("Account", account_id)
        return account

    def credit(self, account_id: str, amount: int) -> Account:
        """Add ``amount`` to an account balance.

        Returns:
            Account after the credit

        Raises:
            ValidationError: If amount is not positive
            EntityNotFound: If account not found
        """
        validate_amount(amount)
        self.db.adjust_account_balance(account_id, amount)
        account = self._require_account(account_id)
        logger.debug("Credited %s to account %s, balance now %s", amount, account_id, account.balance)
        return account

    def debit(self, account_id: str, amount: int) -> Account:
        """Subtract ``amount`` from an account balance.

        Rejected in full when the committed balance does not cover it; no
        partial debit is ever applied and the balance is never clamped.

        Returns:
            Account after the debit

        Raises:
            ValidationError: If amount is not positive
            EntityNotFound: If account not found
            InsufficientFunds: If the balance is lower than amount
        """
        validate_amount(amount)
        if not self.db.adjust_account_balance(account_id, -amount):
            available = self._require_account(account_id).balance
            logger.info(
                "Rejected debit of %s from account %s (available %s)", amount, account_id, available
            )
            raise InsufficientFunds(account_id, amount, available)
        account = self._require_account(account_id)
        logger.debug("Debited %s from account %s, balance now %s", amount, account_id, account.balance)
        return account

    def apply(self, account_id: str, signed_amount: int) -> Account:
        """Credit a positive amount or debit a negative one."""
        if signed_amount > 0:
            return self.credit(account_id, signed_amount)
        return self.debit(account_id, -signed_amount)

    def reverse(self, posting: Posting) -> Account:
        """Apply the exact inverse of a committed posting.

        Opening-balance postings carry no ledger effect, so reversing one is a
        no-op.

        Raises:
            InsufficientFunds: If reversing a credit needs more than the balance
        """
        if not posting.affects_balance:
            return self._require_account(posting.account_id)
        return self.apply(posting.account_id, -posting.amount)

    def check_funds(self, account_id: str, amount: int) -> Account:
        """Pre-validate a debit without writing.

        The real guard is in :meth:`debit`; this only lets callers reject early.

        Raises:
            EntityNotFound: If account not found
            InsufficientFunds: If the current balance is lower than amount
        """
        account = self._require_account(account_id)
        if amount > account.balance:
            raise InsufficientFunds(account_id, amount, account.balance)
        return account

    def expected_balance(self, account_id: str) -> int:
        """Opening balance plus the sum of every ledger posting on the account."""
        account = self._require_account(account_id)
        return account.opening_balance + self.db.sum_account_postings(account_id)

    def recalculate(self, account_id: str) -> BalanceCheck:
        """Rebuild an account balance from its postings.

        Idempotent, and safe to run while other postings are being written:
        the store computes the sum and writes it in one statement.

        Returns:
            BalanceCheck with the balance before and after
        """
        before = self._require_account(account_id)
        new_balance = self.db.recalculate_account_balance(account_id)
        if new_balance != before.balance:
            logger.info(
                "Recalculated account %s balance: %s -> %s", account_id, before.balance, new_balance
            )
        return BalanceCheck(
            account_id=account_id,
            account_name=before.name,
            stored_balance=before.balance,
            expected_balance=new_balance,
        )

    def recalculate_all(self) -> list[BalanceCheck]:
        """Recalculate every account of the organization."""
        return [self.recalculate(account.id) for account in self.db.list_accounts()]

    def check(self, account_id: str) -> BalanceCheck:
        """Compare stored and expected balance without writing."""
        account = self._require_account(account_id)
        return BalanceCheck(
            account_id=account_id,
            account_name=account.name,
            stored_balance=account.balance,
            expected_balance=account.opening_balance + self.db.sum_account_postings(account_id),
        )

    def verify(self, account_id: str) -> Account:
        """Return the account, healing its balance first if it drifted.

        Drift is logged as a ConsistencyViolation; it never fails the read.
        """
        result = self.check(account_id)
        if not result.is_consistent:
            violation = ConsistencyViolation(
                "Account", account_id, "balance", result.stored_balance, result.expected_balance
            )
            logger.warning("%s; recalculating", violation)
            self.recalculate(account_id)
        return self._require_account(account_id)
