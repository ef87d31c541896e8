"""Tests for expense budgets."""

from datetime import date
import pytest

from orgledger.domain.errors import (
    ConflictError,
    EntityNotFound,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def main_account(make_account):
    return make_account("Main", 1000000)


def test_create_budget_starts_unspent(budget_service):
    budget_id = budget_service.create_budget("Utilities", "2024-03", 50000)

    budget = budget_service.require_budget(budget_id)
    assert budget.category == "Utilities"
    assert budget.period == "2024-03"
    assert budget.budgeted == 50000
    assert budget.spent == 0
    assert budget.remaining == 50000


def test_spent_follows_expenditure_postings(budget_service, orchestrator, main_account):
    """Only expenditure postings in the category and inside the period count."""
    budget_id = budget_service.create_budget("Utilities", "2024-03", 50000)

    orchestrator.record_expenditure(main_account, 12000, "Utilities", date=date(2024, 3, 1))
    orchestrator.record_expenditure(main_account, 8000, "Utilities", date=date(2024, 3, 31))
    orchestrator.record_expenditure(main_account, 5000, "Utilities", date=date(2024, 4, 1))
    orchestrator.record_expenditure(main_account, 3000, "Bank Charges", date=date(2024, 3, 15))
    orchestrator.record_income(main_account, 9000, "Donations", date=date(2024, 3, 15))

    budget = budget_service.require_budget(budget_id)
    assert budget.spent == 20000
    assert budget.remaining == 30000
    assert [p.amount for p in budget_service.postings(budget_id)] == [-12000, -8000]


def test_spent_drops_when_expense_deleted(budget_service, orchestrator, main_account):
    budget_id = budget_service.create_budget("Utilities", "2024-Q1", 10000)
    posting_id = orchestrator.record_expenditure(main_account, 15000, "Utilities", date=date(2024, 2, 10))

    assert budget_service.require_budget(budget_id).is_over_budget

    orchestrator.delete_posting(posting_id)
    budget = budget_service.require_budget(budget_id)
    assert budget.spent == 0
    assert not budget.is_over_budget


def test_yearly_and_quarterly_budgets_overlap(budget_service, orchestrator, main_account):
    year = budget_service.create_budget("Utilities", "2024", 200000)
    quarter = budget_service.create_budget("Utilities", "2024-q2", 60000)
    orchestrator.record_expenditure(main_account, 7000, "Utilities", date=date(2024, 5, 5))
    orchestrator.record_expenditure(main_account, 4000, "Utilities", date=date(2024, 9, 5))

    assert budget_service.require_budget(year).spent == 11000
    quarterly = budget_service.require_budget(quarter)
    assert quarterly.period == "2024-Q2"
    assert quarterly.spent == 7000


def test_one_budget_per_category_and_period(budget_service):
    budget_service.create_budget("Utilities", "2024-03", 50000)

    with pytest.raises(ConflictError):
        budget_service.create_budget("Utilities", "2024-03", 10000)

    # Another period or category is fine
    budget_service.create_budget("Utilities", "2024-04", 50000)
    budget_service.create_budget("Bank Charges", "2024-03", 2000)


def test_create_budget_validation(budget_service):
    with pytest.raises(ValidationError, match="cannot be negative"):
        budget_service.create_budget("Utilities", "2024-03", -1)
    with pytest.raises(ValidationError, match="Invalid budget period"):
        budget_service.create_budget("Utilities", "March", 100)
    with pytest.raises(NotFoundError):
        budget_service.create_budget("Nonexistent", "2024-03", 100)
    # Income categories cannot be budgeted
    with pytest.raises(NotFoundError):
        budget_service.create_budget("Dues", "2024-03", 100)

    assert budget_service.list_budgets() == []


def test_zero_budget_allowed(budget_service):
    budget_id = budget_service.create_budget("Bank Charges", "2024", 0)
    assert budget_service.require_budget(budget_id).budgeted == 0


def test_list_budgets_by_period(budget_service):
    budget_service.create_budget("Utilities", "2024-03", 50000)
    budget_service.create_budget("Bank Charges", "2024-03", 2000)
    budget_service.create_budget("Utilities", "2024-04", 50000)

    march = budget_service.list_budgets(period="2024-03")
    assert [b.category for b in march] == ["Bank Charges", "Utilities"]

    everything = budget_service.list_budgets()
    assert [b.period for b in everything] == ["2024-04", "2024-03", "2024-03"]

    assert [b.period for b in budget_service.list_budgets(category="Utilities")] == ["2024-04", "2024-03"]


def test_update_budget(budget_service, orchestrator, main_account):
    budget_id = budget_service.create_budget("Utilities", "2024-03", 50000)
    orchestrator.record_expenditure(main_account, 3000, "Bank Charges", date=date(2024, 4, 2))

    budget = budget_service.update_budget(budget_id, category="Bank Charges", period="2024-04", budgeted=2500)

    assert budget.category == "Bank Charges"
    assert budget.period == "2024-04"
    assert budget.budgeted == 2500
    assert budget.spent == 3000
    assert budget.is_over_budget


def test_update_budget_rejections(budget_service):
    first = budget_service.create_budget("Utilities", "2024-03", 50000)
    budget_service.create_budget("Utilities", "2024-04", 50000)

    with pytest.raises(ConflictError):
        budget_service.update_budget(first, period="2024-04")
    with pytest.raises(ValidationError):
        budget_service.update_budget(first, budgeted=-5)
    with pytest.raises(EntityNotFound):
        budget_service.update_budget("missing", budgeted=5)

    # The failed update left the store usable and the budget unchanged
    assert budget_service.require_budget(first).period == "2024-03"


def test_delete_budget(budget_service):
    budget_id = budget_service.create_budget("Utilities", "2024-03", 50000)

    budget_service.delete_budget(budget_id)

    assert budget_service.get_budget(budget_id) is None
    with pytest.raises(EntityNotFound):
        budget_service.delete_budget(budget_id)


def test_budgeted_category_cannot_be_deleted(budget_service, category_service):
    budget_service.create_budget("Utilities", "2024-03", 50000)
    utilities = next(c for c in category_service.list_categories("expense") if c.name == "Utilities")

    with pytest.raises(ValueError, match="in use"):
        category_service.delete_category(utilities.id)
