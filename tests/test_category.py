"""Tests for the category service."""

from datetime import date
import pytest

from orgledger.domain.category import CategoryService
from orgledger.domain.entities import CategoryType
from orgledger.domain.errors import ConflictError, DependencyError, ValidationError


def test_init_default_categories_is_repeatable(temp_db):
    service = CategoryService(temp_db)
    assert service.init_default_categories() == 4
    assert service.init_default_categories() == 0

    names = {(c.category_type, c.name) for c in service.list_categories()}
    assert (CategoryType.INCOME, "Opening Balance") in names
    assert (CategoryType.LIABILITY, "Loans/Overdrafts") in names


def test_same_name_allowed_across_types(category_service):
    category_service.create_category("Rent", "income")
    category_service.create_category("Rent", "expense")

    with pytest.raises(ConflictError):
        category_service.create_category("Rent", "expense")


def test_track_members_only_for_income(category_service):
    with pytest.raises(ValidationError):
        category_service.create_category("Fuel", "expense", track_members=True)


def test_unknown_type_rejected(category_service):
    with pytest.raises(ValidationError):
        category_service.create_category("Misc", "asset")


def test_default_categories_protected(category_service):
    opening = category_service.require_category("Opening Balance", CategoryType.INCOME)

    with pytest.raises(ValidationError):
        category_service.update_category(opening.id, name="Start")
    with pytest.raises(ValidationError):
        category_service.delete_category(opening.id)


def test_rename_and_delete_unused(category_service):
    category_id = category_service.create_category("Snacks", "expense")
    category_service.update_category(category_id, name="Refreshments")
    assert category_service.get_category(category_id).name == "Refreshments"

    category_service.delete_category(category_id)
    assert category_service.get_category(category_id) is None


def test_delete_in_use_category_blocked(category_service, orchestrator, make_account):
    account_id = make_account("Main", 1000)
    orchestrator.record_expenditure(account_id, 100, "Utilities")
    utilities = category_service.require_category("Utilities", CategoryType.EXPENSE)

    with pytest.raises(DependencyError):
        category_service.delete_category(utilities.id)


def test_delete_liability_category_in_use_blocked(category_service, liability_service):
    category_id = category_service.create_category("Supplier credit", "liability")
    liability_service.create_liability(
        date=date(2024, 1, 1),
        category="Supplier credit",
        description="Paint",
        creditor="Hardware shop",
        original_amount=1000,
    )

    with pytest.raises(DependencyError):
        category_service.delete_category(category_id)
