"""Tests for the SQLAlchemy entity store."""

import subprocess
import sys

import pytest
from datetime import date, datetime
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from orgledger.database.factories import create_sqlite_database
from orgledger.database.models import Posting as PostingModel
from orgledger.domain import entities
from orgledger.domain.entities import PostingKind
from orgledger.domain.errors import ConflictError, DependencyError, EntityNotFound


class TestDatabaseInterface:
    """Tests to verify the store returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Bank", bank_name="GCB")

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.account_type == entities.AccountType.BANK
        assert account.balance == 0
        assert account.bank_name == "GCB"
        assert isinstance(account.created_at, datetime)

    def test_create_posting_returns_domain_model(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash")
        posting_id = temp_db.create_posting(
            account_id=account_id,
            kind=PostingKind.INCOME,
            amount=1500,
            date=date(2024, 1, 2),
            category="Dues",
            member_name="Ama",
        )

        posting = temp_db.get_posting(posting_id)

        assert isinstance(posting, entities.Posting)
        assert posting.kind == PostingKind.INCOME
        assert posting.amount == 1500
        assert posting.entry_type == entities.EntryType.INCOME
        assert not posting.is_reconciled

    def test_postings_listed_in_commit_order(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash")
        ids = [
            temp_db.create_posting(
                account_id=account_id,
                kind=PostingKind.INCOME,
                amount=100,
                date=date(2024, 1, day),
                category="Dues",
            )
            for day in (3, 1, 2)
        ]

        listed = temp_db.list_postings(account_id=account_id)

        assert [p.id for p in listed] == ids
        assert listed[0].sequence < listed[1].sequence < listed[2].sequence

    def test_duplicate_account_name_conflicts(self, temp_db):
        temp_db.create_account(name="Main", account_type="Cash")
        with pytest.raises(ConflictError):
            temp_db.create_account(name="Main", account_type="Bank")


class TestBalanceUpdates:
    """Tests for the guarded balance statements."""

    def test_conditional_debit(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash", opening_balance=1000)

        assert temp_db.adjust_account_balance(account_id, -600) is True
        assert temp_db.adjust_account_balance(account_id, -401) is False
        assert temp_db.get_account(account_id).balance == 400

    def test_conditional_debit_across_sessions(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash", opening_balance=1000)
        other = create_sqlite_database(database_path=temp_db.database_path, organization_id="org-a")
        other.connect()
        try:
            # Both sessions have seen the 1000 balance before either debits
            assert temp_db.get_account(account_id).balance == 1000
            assert other.get_account(account_id).balance == 1000

            assert temp_db.adjust_account_balance(account_id, -600) is True
            assert other.adjust_account_balance(account_id, -600) is False

            assert other.get_account(account_id).balance == 400
            assert temp_db.get_account(account_id).balance == 400
        finally:
            other.disconnect()

    def test_credit_always_applies(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash")
        assert temp_db.adjust_account_balance(account_id, 250) is True
        assert temp_db.get_account(account_id).balance == 250

    def test_adjust_missing_account(self, temp_db):
        with pytest.raises(EntityNotFound):
            temp_db.adjust_account_balance("missing", 10)

    def test_recalculate_excludes_opening_balance_postings(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash", opening_balance=1000)
        temp_db.create_posting(
            account_id=account_id,
            kind=PostingKind.OPENING_BALANCE,
            amount=1000,
            date=date(2024, 1, 1),
            category="Opening Balance",
        )
        temp_db.create_posting(
            account_id=account_id,
            kind=PostingKind.EXPENDITURE,
            amount=-300,
            date=date(2024, 1, 2),
            category="Utilities",
        )

        assert temp_db.sum_account_postings(account_id) == -300
        assert temp_db.recalculate_account_balance(account_id) == 700
        assert temp_db.get_account(account_id).balance == 700

    def test_delete_account_with_postings_blocked(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash")
        temp_db.create_posting(
            account_id=account_id,
            kind=PostingKind.INCOME,
            amount=100,
            date=date(2024, 1, 2),
            category="Dues",
        )

        with pytest.raises(DependencyError, match="1 posting"):
            temp_db.delete_account(account_id)


class TestFailedWrites:
    """A write that fails inside SQLAlchemy is rolled back."""

    def test_failed_flush_leaves_store_usable(self, temp_db):
        account_id = temp_db.create_account(name="Main", account_type="Cash")

        def boom(mapper, connection, target):
            raise OperationalError("INSERT INTO postings", {}, Exception("disk I/O error"))

        event.listen(PostingModel, "before_insert", boom)
        try:
            with pytest.raises(OperationalError):
                temp_db.create_posting(
                    account_id=account_id,
                    kind=PostingKind.INCOME,
                    amount=100,
                    date=date(2024, 1, 2),
                    category="Dues",
                )
        finally:
            event.remove(PostingModel, "before_insert", boom)

        assert temp_db.list_postings(account_id=account_id) == []
        assert temp_db.adjust_account_balance(account_id, 100) is True
        assert temp_db.get_account(account_id).balance == 100

    def test_rollback_without_session_is_noop(self, temp_db):
        temp_db.disconnect()
        temp_db.rollback()
        assert temp_db.list_accounts() == []


class TestTenantIsolation:
    """Each store instance only sees its own organization's rows."""

    def test_organizations_do_not_see_each_other(self, temp_db):
        other = create_sqlite_database(database_path=temp_db.database_path, organization_id="org-b")
        other.connect()
        try:
            mine = temp_db.create_account(name="Main", account_type="Cash", opening_balance=500)
            theirs = other.create_account(name="Main", account_type="Bank", opening_balance=900)

            assert [a.id for a in temp_db.list_accounts()] == [mine]
            assert [a.id for a in other.list_accounts()] == [theirs]
            assert temp_db.get_account(theirs) is None
            assert other.get_account_by_name("Main").balance == 900

            # A write aimed at another organization's row finds nothing
            with pytest.raises(EntityNotFound):
                temp_db.adjust_account_balance(theirs, 100)
            assert other.get_account(theirs).balance == 900
        finally:
            other.disconnect()

    def test_organization_from_environment(self, temp_db, monkeypatch):
        monkeypatch.setenv("ORGLEDGER_ORG", "org-c")
        db = create_sqlite_database(database_path=temp_db.database_path)
        assert db.organization_id == "org-c"


@pytest.mark.parametrize(
    "first_import",
    ["orgledger.database", "orgledger.database.sqlalchemy_db", "orgledger.domain", "orgledger.cli.main"],
)
def test_packages_import_in_any_order(first_import):
    modules = [
        first_import,
        "orgledger.domain.budget",
        "orgledger.domain.orchestrator",
        "orgledger.domain.reconciliation",
        "orgledger.domain.overview",
        "orgledger.domain.transfer",
        "orgledger.database.factories",
    ]
    code = "; ".join(f"import {name}" for name in modules)

    result = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True)

    assert result.returncode == 0, result.stderr
