"""Transaction orchestrator.

The entity store commits one row at a time, so every operation that touches
more than one row is written here as a named recipe: an ordered list of steps,
each with a compensating action. Inputs are validated before the first write.
If a step fails after others have committed, the committed steps are undone
in reverse order and a PartialCommitError reports exactly what happened.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal
from typing import Any, Callable, Optional

from orgledger.database.base import Database
from orgledger.domain.account import AccountService
from orgledger.domain.category import (
    CategoryService,
    LOANS_CATEGORY,
    OPENING_BALANCE_CATEGORY,
)
from orgledger.domain.entities import CategoryType, EntryType, Posting, PostingKind
from orgledger.domain.errors import (
    ConflictError,
    EntityNotFound,
    PartialCommitError,
    ValidationError,
)
from orgledger.domain.ledger import LedgerService, validate_amount
from orgledger.domain.liability import LiabilityService
from orgledger.domain.posting import PostingService

logger = logging.getLogger(__name__)

TRANSFER_CATEGORY = "Transfer"

Context = dict[str, Any]


@dataclass(frozen=True)
class Step:
    """One committed write of a recipe and the action that undoes it.

    ``execute`` and ``compensate`` receive the recipe context, which maps the
    name of every completed step to the value it returned.
    """

    name: str
    execute: Callable[[Context], Any]
    compensate: Optional[Callable[[Context], Any]] = None


class TransactionOrchestrator:
    """Runs multi-step ledger recipes with compensation and idempotency keys."""

    def __init__(self, db: Database):
        """Initialize the orchestrator.

        Args:
            db: Database instance
        """
        self.db = db
        self.ledger = LedgerService(db)
        self.liabilities = LiabilityService(db)
        self.accounts = AccountService(db)
        self.categories = CategoryService(db)
        self.postings = PostingService(db)

    # Runner
    def run(self, recipe: str, steps: list[Step]) -> Context:
        """Execute steps in order, compensating on failure.

        Returns:
            Context mapping step names to their results

        Raises:
            Exception: The original error if the first step fails
            PartialCommitError: If a later step fails; ``__cause__`` is the original error
        """
        context: Context = {}
        completed: list[Step] = []

        for step in steps:
            logger.debug("%s: executing step '%s'", recipe, step.name)
            try:
                context[step.name] = step.execute(context)
            except Exception as e:
                # A failed flush leaves the session unusable until rolled back
                self.db.rollback()
                if not completed:
                    raise
                logger.warning(
                    "%s: step '%s' failed (%s); rolling back %d completed step(s)",
                    recipe,
                    step.name,
                    e,
                    len(completed),
                )
                failures = self._compensate(recipe, completed, context)
                raise PartialCommitError(
                    recipe,
                    completed_steps=[s.name for s in completed],
                    failed_step=step.name,
                    rolled_back=not failures,
                    compensation_failures=failures,
                    reason=str(e),
                ) from e
            completed.append(step)

        return context

    def _compensate(self, recipe: str, completed: list[Step], context: Context) -> list[str]:
        failures = []
        for step in reversed(completed):
            if step.compensate is None:
                continue
            try:
                step.compensate(context)
                logger.debug("%s: rolled back step '%s'", recipe, step.name)
            except Exception:
                logger.exception("%s: rollback of step '%s' failed", recipe, step.name)
                failures.append(step.name)
        return failures

    def _replay(self, recipe: str, idempotency_key: Optional[str]) -> Optional[str]:
        """Return the stored result of a completed recipe with this key, if any.

        Raises:
            ConflictError: If the key was used by a different recipe
        """
        if idempotency_key is None:
            return None
        record = self.db.get_operation(idempotency_key)
        if record is None:
            return None
        if record.recipe != recipe:
            raise ConflictError(
                f"Idempotency key '{idempotency_key}' was already used for {record.recipe}"
            )
        logger.info("%s: key '%s' already completed, returning %s", recipe, idempotency_key, record.result_id)
        return record.result_id

    def _finish(
        self, recipe: str, idempotency_key: Optional[str], steps: list[Step], result_step: str
    ) -> str:
        result_id = self.run(recipe, steps)[result_step]
        if idempotency_key is not None:
            self.db.record_operation(idempotency_key, recipe, result_id)
        return result_id

    def _restore_posting(self, posting: Posting) -> str:
        return self.db.create_posting(
            account_id=posting.account_id,
            kind=posting.kind,
            amount=posting.amount,
            date=posting.date,
            category=posting.category,
            description=posting.description,
            reference=posting.reference,
            member_id=posting.member_id,
            member_name=posting.member_name,
            linked_liability_id=posting.linked_liability_id,
            transfer_id=posting.transfer_id,
            added_in_reconciliation_id=posting.added_in_reconciliation_id,
        )

    def _expenditure_steps(
        self,
        account_id: str,
        amount: int,
        date: date_type,
        category: str,
        description: Optional[str],
        reference: Optional[str],
        added_in_reconciliation_id: Optional[str] = None,
        liability: Optional[Callable[[Context], str]] = None,
    ) -> list[Step]:
        steps = [
            Step(
                "debit account",
                lambda ctx: self.ledger.debit(account_id, amount),
                lambda ctx: self.ledger.credit(account_id, amount),
            ),
            Step(
                "create expenditure posting",
                lambda ctx: self.db.create_posting(
                    account_id=account_id,
                    kind=PostingKind.EXPENDITURE,
                    amount=-amount,
                    date=date,
                    category=category,
                    description=description,
                    reference=reference,
                    added_in_reconciliation_id=added_in_reconciliation_id,
                ),
                lambda ctx: self.db.delete_posting(ctx["create expenditure posting"]),
            ),
        ]
        if liability is not None:
            steps.append(
                Step(
                    "record liability payment",
                    lambda ctx: self.liabilities.record_payment(
                        liability(ctx), ctx["create expenditure posting"], amount
                    ),
                    lambda ctx: self.liabilities.unlink_payment(
                        liability(ctx), ctx["create expenditure posting"]
                    ),
                )
            )
        return steps

    # Recipes
    def create_account_with_opening_balance(
        self,
        name: str,
        account_type: str,
        opening_balance: int = 0,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        **metadata: Optional[str],
    ) -> str:
        """Create an account and record its opening balance.

        The balance starts at the opening balance; the accompanying
        ``opening_balance`` posting documents it without adding to it again.

        Returns:
            Account ID
        """
        recipe = "create_account_with_opening_balance"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        parsed_type = self.accounts.validate_new_account(name, account_type)
        if isinstance(opening_balance, bool) or not isinstance(opening_balance, int):
            raise ValidationError("Opening balance must be an integer number of minor units")
        if opening_balance < 0:
            raise ValidationError("Opening balance cannot be negative")
        if opening_balance > 0:
            self.categories.require_category(OPENING_BALANCE_CATEGORY, CategoryType.INCOME)
        posting_date = date or date_type.today()

        steps = [
            Step(
                "create account",
                lambda ctx: self.db.create_account(
                    name=name,
                    account_type=parsed_type.value,
                    opening_balance=opening_balance,
                    description=description,
                    **metadata,
                ),
                lambda ctx: self.db.delete_account(ctx["create account"]),
            )
        ]
        if opening_balance > 0:
            steps.append(
                Step(
                    "record opening balance",
                    lambda ctx: self.db.create_posting(
                        account_id=ctx["create account"],
                        kind=PostingKind.OPENING_BALANCE,
                        amount=opening_balance,
                        date=posting_date,
                        category=OPENING_BALANCE_CATEGORY,
                        description=f"Opening balance for {name}",
                    ),
                    lambda ctx: self.db.delete_posting(ctx["record opening balance"]),
                )
            )
        return self._finish(recipe, idempotency_key, steps, "create account")

    def record_income(
        self,
        account_id: str,
        amount: int,
        category: str,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        member_id: Optional[str] = None,
        member_name: Optional[str] = None,
        added_in_reconciliation_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Record income and credit the receiving account.

        Returns:
            Posting ID
        """
        recipe = "record_income"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        validate_amount(amount)
        self.accounts.require_account(account_id)
        self.postings.validate_category(category, EntryType.INCOME)
        posting_date = date or date_type.today()

        steps = [
            Step(
                "create income posting",
                lambda ctx: self.db.create_posting(
                    account_id=account_id,
                    kind=PostingKind.INCOME,
                    amount=amount,
                    date=posting_date,
                    category=category,
                    description=description,
                    reference=reference,
                    member_id=member_id,
                    member_name=member_name,
                    added_in_reconciliation_id=added_in_reconciliation_id,
                ),
                lambda ctx: self.db.delete_posting(ctx["create income posting"]),
            ),
            Step(
                "credit account",
                lambda ctx: self.ledger.credit(account_id, amount),
                lambda ctx: self.ledger.debit(account_id, amount),
            ),
        ]
        return self._finish(recipe, idempotency_key, steps, "create income posting")

    def record_expenditure(
        self,
        account_id: str,
        amount: int,
        category: str,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        added_in_reconciliation_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Record an expense and debit the paying account.

        Returns:
            Posting ID

        Raises:
            InsufficientFunds: If the account cannot cover the amount (nothing is written)
        """
        recipe = "record_expenditure"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        validate_amount(amount)
        self.postings.validate_category(category, EntryType.EXPENDITURE)
        self.ledger.check_funds(account_id, amount)

        steps = self._expenditure_steps(
            account_id,
            amount,
            date or date_type.today(),
            category,
            description,
            reference,
            added_in_reconciliation_id=added_in_reconciliation_id,
        )
        return self._finish(recipe, idempotency_key, steps, "create expenditure posting")

    def pay_liability(
        self,
        liability_id: str,
        account_id: str,
        amount: int,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Pay towards a liability from an account.

        Creates the payment posting, debits the account and re-derives the
        liability.

        Returns:
            Payment posting ID

        Raises:
            OverpaymentError: If amount exceeds the outstanding balance (nothing is written)
            InsufficientFunds: If the account cannot cover the amount (nothing is written)
        """
        recipe = "pay_liability"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        validate_amount(amount)
        liability = self.liabilities.check_payment(liability_id, amount)
        self.ledger.check_funds(account_id, amount)

        steps = self._expenditure_steps(
            account_id,
            amount,
            date or date_type.today(),
            liability.category,
            description or f"Payment for {liability.description}",
            reference,
            liability=lambda ctx: liability_id,
        )
        return self._finish(recipe, idempotency_key, steps, "create expenditure posting")

    def create_liability_with_initial_payment(
        self,
        date: date_type,
        category: str,
        description: str,
        creditor: str,
        original_amount: int,
        initial_payment: int = 0,
        account_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Create a liability and optionally pay part of it straight away.

        Returns:
            Liability ID

        Raises:
            ValidationError: If the initial payment exceeds the original amount or has no account
            InsufficientFunds: If the account cannot cover the initial payment
        """
        recipe = "create_liability_with_initial_payment"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        self.liabilities.validate_new_liability(category, description, creditor, original_amount)
        if initial_payment:
            validate_amount(initial_payment)
            if initial_payment > original_amount:
                raise ValidationError(
                    f"Initial payment {initial_payment} exceeds the original amount {original_amount}"
                )
            if account_id is None:
                raise ValidationError("An account is required for the initial payment")
            self.ledger.check_funds(account_id, initial_payment)

        steps = [
            Step(
                "create liability",
                lambda ctx: self.liabilities.create_liability(
                    date=date,
                    category=category,
                    description=description,
                    creditor=creditor,
                    original_amount=original_amount,
                ),
                lambda ctx: self.db.delete_liability(ctx["create liability"]),
            )
        ]
        if initial_payment:
            steps += self._expenditure_steps(
                account_id,
                initial_payment,
                date,
                category,
                f"Initial payment for {description}",
                None,
                liability=lambda ctx: ctx["create liability"],
            )
        return self._finish(recipe, idempotency_key, steps, "create liability")

    def create_loan(
        self,
        account_id: str,
        lender: str,
        amount_received: int,
        amount_payable: int,
        date: date_type,
        description: str,
        interest_rate: Optional[Decimal] = None,
        loan_start_date: Optional[date_type] = None,
        loan_end_date: Optional[date_type] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Record a loan or overdraft.

        Creates a loan liability for the amount payable and an income posting
        for the amount received, credits the receiving account, and links the
        two records.

        Returns:
            Liability ID
        """
        recipe = "create_loan"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        validate_amount(amount_received)
        self.liabilities.validate_new_liability(LOANS_CATEGORY, description, lender, amount_payable)
        if amount_payable < amount_received:
            raise ValidationError("Amount payable should be greater than or equal to amount received")
        if loan_start_date and loan_end_date and loan_end_date < loan_start_date:
            raise ValidationError("Loan end date cannot be before its start date")
        self.accounts.require_account(account_id)

        steps = [
            Step(
                "create loan liability",
                lambda ctx: self.liabilities.create_liability(
                    date=date,
                    category=LOANS_CATEGORY,
                    description=description,
                    creditor=lender,
                    original_amount=amount_payable,
                    is_loan=True,
                    interest_rate=interest_rate,
                    loan_start_date=loan_start_date,
                    loan_end_date=loan_end_date,
                    amount_received=amount_received,
                ),
                lambda ctx: self.db.delete_liability(ctx["create loan liability"]),
            ),
            Step(
                "create loan income posting",
                lambda ctx: self.db.create_posting(
                    account_id=account_id,
                    kind=PostingKind.INCOME,
                    amount=amount_received,
                    date=date,
                    category=LOANS_CATEGORY,
                    description=f"Loan from {lender}: {description}",
                ),
                lambda ctx: self.db.delete_posting(ctx["create loan income posting"]),
            ),
            Step(
                "credit account",
                lambda ctx: self.ledger.credit(account_id, amount_received),
                lambda ctx: self.ledger.debit(account_id, amount_received),
            ),
            Step(
                "link income to loan",
                lambda ctx: self.db.update_liability(
                    ctx["create loan liability"],
                    linked_income_posting_id=ctx["create loan income posting"],
                ),
            ),
        ]
        return self._finish(recipe, idempotency_key, steps, "create loan liability")

    def create_transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: int,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Move money between two accounts.

        Produces exactly one debit posting on the source and one credit
        posting on the destination, or neither.

        Returns:
            Transfer ID
        """
        recipe = "create_transfer"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        validate_amount(amount)
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to the same account")
        source = self.ledger.check_funds(from_account_id, amount)
        destination = self.accounts.require_account(to_account_id)
        transfer_date = date or date_type.today()

        def post_leg(account_id: str, kind: PostingKind, signed_amount: int):
            return lambda ctx: self.db.create_posting(
                account_id=account_id,
                kind=kind,
                amount=signed_amount,
                date=transfer_date,
                category=TRANSFER_CATEGORY,
                description=description or f"Transfer {source.name} -> {destination.name}",
                transfer_id=ctx["record transfer"],
            )

        steps = [
            Step(
                "debit source",
                lambda ctx: self.ledger.debit(from_account_id, amount),
                lambda ctx: self.ledger.credit(from_account_id, amount),
            ),
            Step(
                "credit destination",
                lambda ctx: self.ledger.credit(to_account_id, amount),
                lambda ctx: self.ledger.debit(to_account_id, amount),
            ),
            Step(
                "record transfer",
                lambda ctx: self.db.create_transfer(
                    date=transfer_date,
                    from_account_id=from_account_id,
                    from_account_name=source.name,
                    to_account_id=to_account_id,
                    to_account_name=destination.name,
                    amount=amount,
                    description=description,
                ),
                lambda ctx: self.db.delete_transfer(ctx["record transfer"]),
            ),
            Step(
                "post source leg",
                post_leg(from_account_id, PostingKind.TRANSFER_OUT, -amount),
                lambda ctx: self.db.delete_posting(ctx["post source leg"]),
            ),
            Step(
                "post destination leg",
                post_leg(to_account_id, PostingKind.TRANSFER_IN, amount),
                lambda ctx: self.db.delete_posting(ctx["post destination leg"]),
            ),
        ]
        return self._finish(recipe, idempotency_key, steps, "record transfer")

    def delete_transfer(self, transfer_id: str, idempotency_key: Optional[str] = None) -> str:
        """Undo a transfer: move the money back and remove both legs.

        Returns:
            Transfer ID

        Raises:
            EntityNotFound: If transfer not found
            ValidationError: If either leg is reconciled
            InsufficientFunds: If the destination no longer holds the amount
        """
        recipe = "delete_transfer"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        transfer = self.db.get_transfer(transfer_id)
        if transfer is None:
            raise EntityNotFound("Transfer", transfer_id)
        legs = self.db.list_postings(transfer_id=transfer_id)
        for leg in legs:
            self.postings.ensure_mutable(leg)
        self.ledger.check_funds(transfer.to_account_id, transfer.amount)

        steps = [
            Step(
                "debit destination",
                lambda ctx: self.ledger.debit(transfer.to_account_id, transfer.amount),
                lambda ctx: self.ledger.credit(transfer.to_account_id, transfer.amount),
            ),
            Step(
                "credit source",
                lambda ctx: self.ledger.credit(transfer.from_account_id, transfer.amount),
                lambda ctx: self.ledger.debit(transfer.from_account_id, transfer.amount),
            ),
        ]
        for leg in legs:
            steps.append(
                Step(
                    f"delete {leg.kind.value} leg",
                    lambda ctx, leg=leg: self.db.delete_posting(leg.id),
                    lambda ctx, leg=leg: self._restore_posting(leg),
                )
            )
        steps.append(
            Step("delete transfer record", lambda ctx: self.db.delete_transfer(transfer_id))
        )
        self.run(recipe, steps)
        if idempotency_key is not None:
            self.db.record_operation(idempotency_key, recipe, transfer_id)
        return transfer_id

    def delete_posting(self, posting_id: str, idempotency_key: Optional[str] = None) -> str:
        """Delete an income or expenditure posting and reverse its ledger effect.

        A liability payment is unlinked first so the liability re-derives.

        Returns:
            Posting ID

        Raises:
            EntityNotFound: If posting not found
            ValidationError: If the posting is reconciled, a transfer leg or an opening balance
            InsufficientFunds: If reversing income needs more than the account holds
        """
        recipe = "delete_posting"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        posting = self.postings.require_posting(posting_id)
        self.postings.ensure_mutable(posting)
        if posting.transfer_id is not None:
            raise ValidationError(
                f"Posting {posting_id} is part of transfer {posting.transfer_id}; delete the transfer instead"
            )
        if posting.kind == PostingKind.OPENING_BALANCE:
            raise ValidationError("Opening balance postings cannot be deleted")
        if posting.amount > 0:
            self.ledger.check_funds(posting.account_id, posting.amount)

        steps = []
        liability_id = posting.linked_liability_id
        if liability_id is not None:
            steps.append(
                Step(
                    "unlink liability payment",
                    lambda ctx: self.liabilities.unlink_payment(liability_id, posting_id),
                    lambda ctx: self.liabilities.record_payment(liability_id, posting_id, -posting.amount),
                )
            )
        steps += [
            Step(
                "reverse ledger effect",
                lambda ctx: self.ledger.reverse(posting),
                lambda ctx: self.ledger.apply(posting.account_id, posting.amount),
            ),
            Step("delete posting", lambda ctx: self.db.delete_posting(posting_id)),
        ]
        self.run(recipe, steps)
        if idempotency_key is not None:
            self.db.record_operation(idempotency_key, recipe, posting_id)
        return posting_id

    def update_posting_amount(
        self, posting_id: str, amount: int, idempotency_key: Optional[str] = None
    ) -> str:
        """Change the amount of an income or expenditure posting.

        Args:
            posting_id: Posting to change
            amount: New magnitude in minor units; the posting keeps its sign

        Returns:
            Posting ID

        Raises:
            ValidationError: If the posting is reconciled or not an income/expenditure posting
            InsufficientFunds: If the change needs more than the account holds
            OverpaymentError: If a larger liability payment would overpay it
        """
        recipe = "update_posting_amount"
        cached = self._replay(recipe, idempotency_key)
        if cached is not None:
            return cached

        validate_amount(amount)
        posting = self.postings.require_posting(posting_id)
        self.postings.ensure_mutable(posting)
        if posting.kind not in (PostingKind.INCOME, PostingKind.EXPENDITURE):
            raise ValidationError(f"Amount of {posting.kind.value} posting {posting_id} cannot be edited")

        old_amount = posting.amount
        new_amount = amount if old_amount > 0 else -amount
        delta = new_amount - old_amount
        liability_id = posting.linked_liability_id

        if delta < 0:
            self.ledger.check_funds(posting.account_id, -delta)
        if liability_id is not None and amount > -old_amount:
            self.liabilities.check_payment(liability_id, amount, exclude_posting_id=posting_id)

        steps = []
        if delta != 0:
            steps += [
                Step(
                    "adjust ledger",
                    lambda ctx: self.ledger.apply(posting.account_id, delta),
                    lambda ctx: self.ledger.apply(posting.account_id, -delta),
                ),
                Step(
                    "update posting amount",
                    lambda ctx: self.db.update_posting(posting_id, amount=new_amount),
                    lambda ctx: self.db.update_posting(posting_id, amount=old_amount),
                ),
            ]
            if liability_id is not None:
                steps.append(
                    Step(
                        "recompute liability",
                        lambda ctx: self.liabilities.recompute(liability_id),
                        lambda ctx: self.liabilities.recompute(liability_id),
                    )
                )
        self.run(recipe, steps)
        if idempotency_key is not None:
            self.db.record_operation(idempotency_key, recipe, posting_id)
        return posting_id
