"""Shared domain error messages and error types."""

from decimal import Decimal
from typing import Optional, Sequence


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class EntityNotFound(NotFoundError):
    """A referenced account, liability, posting or other row is missing.

    The caller is expected to re-sync its view of the data and retry.
    """

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(entity_not_found(entity, entity_id))


class InsufficientFunds(ValidationError):
    """A debit would drive an account balance below zero."""

    def __init__(self, account_id: str, requested: int, available: int):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(insufficient_funds(account_id, requested, available))


class OverpaymentError(ValidationError):
    """A liability payment would push amount paid past the original amount."""

    def __init__(self, liability_id: str, requested: int, outstanding: int):
        self.liability_id = liability_id
        self.requested = requested
        self.outstanding = outstanding
        super().__init__(overpayment(liability_id, requested, outstanding))


class PartialCommitError(DomainError):
    """A multi-step recipe failed after at least one step committed.

    Attributes:
        recipe: Name of the recipe that failed
        completed_steps: Steps that committed before the failure, in order
        failed_step: Step that raised
        rolled_back: True when every completed step was compensated
        compensation_failures: Steps whose compensation itself failed; these
            need manual repair (``ledger recalculate`` heals balances)
    """

    def __init__(
        self,
        recipe: str,
        completed_steps: Sequence[str],
        failed_step: str,
        rolled_back: bool,
        compensation_failures: Sequence[str] = (),
        reason: Optional[str] = None,
    ):
        self.recipe = recipe
        self.completed_steps = tuple(completed_steps)
        self.failed_step = failed_step
        self.rolled_back = rolled_back
        self.compensation_failures = tuple(compensation_failures)
        self.reason = reason
        super().__init__(
            partial_commit(recipe, failed_step, rolled_back, self.compensation_failures, reason)
        )


class ConsistencyViolation(DomainError):
    """A stored derived value drifted from what its inputs say it should be.

    Logged by the consistency checks and followed by a self-heal; never raised
    to readers.
    """

    def __init__(self, entity: str, entity_id: str, field: str, stored: object, expected: object):
        self.entity = entity
        self.entity_id = entity_id
        self.field = field
        self.stored = stored
        self.expected = expected
        super().__init__(
            f"{entity} {entity_id}: stored {field} {stored} does not match expected {expected}"
        )


def entity_not_found(entity: str, entity_id: str) -> str:
    """Return message for a missing entity."""
    return f"{entity} {entity_id} not found"


def category_not_found(name: str, category_type: str) -> str:
    """Return message for missing category by name."""
    return f"{category_type.capitalize()} category '{name}' not found"


def insufficient_funds(account_id: str, requested: int, available: int) -> str:
    """Return message for a rejected debit (amounts in minor units)."""
    return (
        f"Insufficient funds in account {account_id}: "
        f"requested {_major(requested):,.2f}, available {_major(available):,.2f}"
    )


def overpayment(liability_id: str, requested: int, outstanding: int) -> str:
    """Return message for a payment larger than the outstanding balance."""
    return (
        f"Payment of {_major(requested):,.2f} exceeds outstanding balance "
        f"{_major(outstanding):,.2f} of liability {liability_id}"
    )


def partial_commit(
    recipe: str,
    failed_step: str,
    rolled_back: bool,
    compensation_failures: Sequence[str],
    reason: Optional[str],
) -> str:
    """Return message for a recipe that failed midway."""
    message = f"{recipe} failed at step '{failed_step}'"
    if reason:
        message += f": {reason}"
    if rolled_back:
        return message + ". Completed steps were rolled back."
    return (
        message
        + ". Rollback incomplete for: "
        + ", ".join(compensation_failures)
        + ". Run 'orgledger ledger recalculate' to repair balances."
    )


def reconciled_posting_locked(posting_id: str) -> str:
    """Return message for an attempt to change a reconciled posting."""
    return (
        f"Posting {posting_id} is reconciled and cannot be changed. "
        "Unmark it in its reconciliation first."
    )


def default_category_locked(name: str) -> str:
    """Return message for an attempt to change a system category."""
    return f"Default system category '{name}' cannot be changed or deleted"


def account_delete_blocked(
    account_id: str, posting_count: int, reconciliation_count: int
) -> str:
    """Return message when account has dependent postings or reconciliations."""
    parts = []
    if posting_count > 0:
        parts.append(f"{posting_count} posting{'s' if posting_count != 1 else ''}")
    if reconciliation_count > 0:
        parts.append(
            f"{reconciliation_count} reconciliation{'s' if reconciliation_count != 1 else ''}"
        )
    return (
        f"Cannot delete account {account_id}: it has {', '.join(parts)}. "
        "Please delete them first."
    )


def _major(minor_units: int) -> Decimal:
    return Decimal(minor_units).scaleb(-2)
