"""Shared pytest fixtures for orgledger tests."""

import tempfile
import os
from datetime import date
import pytest

from orgledger.database.factories import create_sqlite_database
from orgledger.domain.account import AccountService
from orgledger.domain.budget import BudgetService
from orgledger.domain.category import CategoryService
from orgledger.domain.ledger import LedgerService
from orgledger.domain.liability import LiabilityService
from orgledger.domain.orchestrator import TransactionOrchestrator
from orgledger.domain.posting import PostingService
from orgledger.domain.reconciliation import ReconciliationService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path, organization_id="org-a")
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with default and sample categories."""
    service = CategoryService(temp_db)
    service.init_default_categories()
    service.create_category("Dues", "income", track_members=True)
    service.create_category("Donations", "income")
    service.create_category("Utilities", "expense")
    service.create_category("Bank Charges", "expense")
    return service


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def ledger(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def liability_service(temp_db, category_service):
    """Create a LiabilityService; categories are initialized first."""
    return LiabilityService(temp_db)


@pytest.fixture
def posting_service(temp_db, category_service):
    """Create a PostingService; categories are initialized first."""
    return PostingService(temp_db)


@pytest.fixture
def orchestrator(temp_db, category_service):
    """Create a TransactionOrchestrator; categories are initialized first."""
    return TransactionOrchestrator(temp_db)


@pytest.fixture
def budget_service(temp_db, category_service):
    """Create a BudgetService; categories are initialized first."""
    return BudgetService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db, orchestrator):
    """Create a ReconciliationService sharing the test orchestrator."""
    return ReconciliationService(temp_db, orchestrator)


@pytest.fixture
def make_account(orchestrator):
    """Factory creating an account with an opening balance in minor units."""

    def _make(name: str, opening_balance: int = 0, account_type: str = "Bank") -> str:
        return orchestrator.create_account_with_opening_balance(
            name=name,
            account_type=account_type,
            opening_balance=opening_balance,
            date=date(2024, 1, 1),
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
