"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so string columns become domain
enums and reconciliation memberships become frozensets in one place.
"""

from orgledger.domain import entities as domain
from orgledger.database.models import (
    Account as ORMAccount,
    Budget as ORMBudget,
    Category as ORMCategory,
    Liability as ORMLiability,
    Operation as ORMOperation,
    Posting as ORMPosting,
    Reconciliation as ORMReconciliation,
    Transfer as ORMTransfer,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        balance=orm_account.balance,
        opening_balance=orm_account.opening_balance,
        created_at=orm_account.created_at,
        description=orm_account.description,
        bank_name=orm_account.bank_name,
        bank_branch=orm_account.bank_branch,
        account_number=orm_account.account_number,
        bank_account_type=(
            domain.BankAccountType(orm_account.bank_account_type)
            if orm_account.bank_account_type
            else None
        ),
        network=domain.MobileNetwork(orm_account.network) if orm_account.network else None,
        number=orm_account.number,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        category_type=domain.CategoryType(orm_category.category_type),
        created_at=orm_category.created_at,
        description=orm_category.description,
        track_members=orm_category.track_members,
    )


def posting_to_domain(orm_posting: ORMPosting) -> domain.Posting:
    """Convert SQLAlchemy Posting model to domain Posting entity."""
    return domain.Posting(
        id=orm_posting.id,
        account_id=orm_posting.account_id,
        kind=domain.PostingKind(orm_posting.kind),
        amount=orm_posting.amount,
        date=orm_posting.date,
        category=orm_posting.category,
        sequence=orm_posting.sequence,
        created_at=orm_posting.created_at,
        description=orm_posting.description,
        reference=orm_posting.reference,
        member_id=orm_posting.member_id,
        member_name=orm_posting.member_name,
        linked_liability_id=orm_posting.linked_liability_id,
        transfer_id=orm_posting.transfer_id,
        reconciliation_id=orm_posting.reconciliation_id,
        is_reconciled=orm_posting.is_reconciled,
        added_in_reconciliation_id=orm_posting.added_in_reconciliation_id,
    )


def liability_to_domain(orm_liability: ORMLiability) -> domain.Liability:
    """Convert SQLAlchemy Liability model to domain Liability entity."""
    return domain.Liability(
        id=orm_liability.id,
        date=orm_liability.date,
        category=orm_liability.category,
        description=orm_liability.description,
        creditor=orm_liability.creditor,
        original_amount=orm_liability.original_amount,
        amount_paid=orm_liability.amount_paid,
        balance=orm_liability.balance,
        status=domain.LiabilityStatus(orm_liability.status),
        created_at=orm_liability.created_at,
        is_loan=orm_liability.is_loan,
        linked_income_posting_id=orm_liability.linked_income_posting_id,
        interest_rate=orm_liability.interest_rate,
        loan_start_date=orm_liability.loan_start_date,
        loan_end_date=orm_liability.loan_end_date,
        loan_duration_days=orm_liability.loan_duration_days,
        amount_received=orm_liability.amount_received,
    )


def transfer_to_domain(orm_transfer: ORMTransfer) -> domain.Transfer:
    """Convert SQLAlchemy Transfer model to domain Transfer entity."""
    return domain.Transfer(
        id=orm_transfer.id,
        date=orm_transfer.date,
        from_account_id=orm_transfer.from_account_id,
        from_account_name=orm_transfer.from_account_name,
        to_account_id=orm_transfer.to_account_id,
        to_account_name=orm_transfer.to_account_name,
        amount=orm_transfer.amount,
        created_at=orm_transfer.created_at,
        description=orm_transfer.description,
    )


def reconciliation_to_domain(
    orm_reconciliation: ORMReconciliation,
    added_postings: list[ORMPosting],
) -> domain.Reconciliation:
    """Convert SQLAlchemy Reconciliation model to domain Reconciliation entity.

    Args:
        orm_reconciliation: Reconciliation row with its entries loaded
        added_postings: Postings recorded during this reconciliation session
    """
    reconciled_income = frozenset(
        e.posting_id for e in orm_reconciliation.entries
        if e.entry_type == domain.EntryType.INCOME.value
    )
    reconciled_expenditure = frozenset(
        e.posting_id for e in orm_reconciliation.entries
        if e.entry_type == domain.EntryType.EXPENDITURE.value
    )
    return domain.Reconciliation(
        id=orm_reconciliation.id,
        account_id=orm_reconciliation.account_id,
        account_name=orm_reconciliation.account_name,
        date=orm_reconciliation.date,
        book_balance=orm_reconciliation.book_balance,
        bank_balance=orm_reconciliation.bank_balance,
        difference=orm_reconciliation.difference,
        status=domain.ReconciliationStatus(orm_reconciliation.status),
        created_at=orm_reconciliation.created_at,
        notes=orm_reconciliation.notes,
        reconciled_income_entries=reconciled_income,
        reconciled_expenditure_entries=reconciled_expenditure,
        added_income_entries=frozenset(p.id for p in added_postings if p.amount > 0),
        added_expenditure_entries=frozenset(p.id for p in added_postings if p.amount < 0),
    )


def operation_to_domain(orm_operation: ORMOperation) -> domain.OperationRecord:
    """Convert SQLAlchemy Operation model to domain OperationRecord."""
    return domain.OperationRecord(
        key=orm_operation.key,
        recipe=orm_operation.recipe,
        result_id=orm_operation.result_id,
        created_at=orm_operation.created_at,
    )


def budget_to_domain(orm_budget: ORMBudget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity.

    ``spent`` is left at zero; the budget service fills it from postings.
    """
    return domain.Budget(
        id=orm_budget.id,
        category=orm_budget.category,
        period=orm_budget.period,
        budgeted=orm_budget.budgeted,
        created_at=orm_budget.created_at,
        updated_at=orm_budget.updated_at,
    )
