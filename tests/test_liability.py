"""Tests for the liability tracker."""

from datetime import date
import pytest

from orgledger.domain.entities import LiabilityStatus
from orgledger.domain.errors import (
    DependencyError,
    NotFoundError,
    OverpaymentError,
    ValidationError,
)
from orgledger.domain.liability import derive_status


@pytest.fixture
def liability_id(liability_service):
    return liability_service.create_liability(
        date=date(2024, 2, 1),
        category="Liabilities",
        description="Hall rental",
        creditor="Community Centre",
        original_amount=50000,
    )


@pytest.mark.parametrize(
    "original, balance, expected",
    [
        (500, 500, LiabilityStatus.NOT_PAID),
        (500, 300, LiabilityStatus.PARTIALLY_PAID),
        (500, 1, LiabilityStatus.PARTIALLY_PAID),
        (500, 0, LiabilityStatus.PAID),
    ],
)
def test_derive_status(original, balance, expected):
    assert derive_status(original, balance) == expected


def test_new_liability_is_not_paid(liability_service, liability_id):
    liability = liability_service.require_liability(liability_id)
    assert liability.amount_paid == 0
    assert liability.balance == 50000
    assert liability.status == LiabilityStatus.NOT_PAID


def test_payments_walk_status_to_paid(orchestrator, liability_service, liability_id, make_account):
    """Payments of 200 then 300 pay off 500; one more unit is rejected."""
    account_id = make_account("Main", 100000)

    orchestrator.pay_liability(liability_id, account_id, 20000)
    liability = liability_service.require_liability(liability_id)
    assert liability.balance == 30000
    assert liability.status == LiabilityStatus.PARTIALLY_PAID

    orchestrator.pay_liability(liability_id, account_id, 30000)
    liability = liability_service.require_liability(liability_id)
    assert liability.amount_paid == 50000
    assert liability.balance == 0
    assert liability.status == LiabilityStatus.PAID

    with pytest.raises(OverpaymentError) as exc_info:
        orchestrator.pay_liability(liability_id, account_id, 1)
    assert exc_info.value.outstanding == 0

    # Nothing was written by the rejected payment
    assert orchestrator.db.get_account(account_id).balance == 50000
    assert len(liability_service.payments(liability_id)) == 2


def test_payment_posting_uses_liability_category(orchestrator, liability_id, make_account, temp_db):
    account_id = make_account("Main", 100000)
    posting_id = orchestrator.pay_liability(liability_id, account_id, 1000)

    posting = temp_db.get_posting(posting_id)
    assert posting.amount == -1000
    assert posting.category == "Liabilities"
    assert posting.linked_liability_id == liability_id
    assert posting.description == "Payment for Hall rental"


def test_unlink_payment_reverts_status(orchestrator, liability_service, liability_id, make_account):
    account_id = make_account("Main", 100000)
    first = orchestrator.pay_liability(liability_id, account_id, 20000)
    second = orchestrator.pay_liability(liability_id, account_id, 30000)

    liability = liability_service.unlink_payment(liability_id, second)
    assert liability.amount_paid == 20000
    assert liability.status == LiabilityStatus.PARTIALLY_PAID

    liability = liability_service.unlink_payment(liability_id, first)
    assert liability.amount_paid == 0
    assert liability.status == LiabilityStatus.NOT_PAID


def test_reconciled_payment_link_is_locked(
    orchestrator, liability_service, reconciliation_service, liability_id, make_account
):
    account_id = make_account("Main", 100000)
    payment = orchestrator.pay_liability(liability_id, account_id, 20000)
    expense = orchestrator.record_expenditure(account_id, 5000, "Utilities")
    reconciliation = reconciliation_service.create(account_id, 75000)
    reconciliation_service.toggle_entry_reconciled(reconciliation.id, payment)
    reconciliation_service.toggle_entry_reconciled(reconciliation.id, expense)

    with pytest.raises(ValidationError, match="is reconciled"):
        liability_service.unlink_payment(liability_id, payment)
    with pytest.raises(ValidationError, match="is reconciled"):
        liability_service.record_payment(liability_id, expense, 5000)

    liability = liability_service.require_liability(liability_id)
    assert liability.amount_paid == 20000
    assert [p.id for p in liability_service.payments(liability_id)] == [payment]


def test_amount_paid_not_editable_once_paid(orchestrator, liability_service, liability_id, make_account):
    account_id = make_account("Main", 100000)
    orchestrator.pay_liability(liability_id, account_id, 20000)

    with pytest.raises(ValidationError, match="cannot be edited"):
        liability_service.update_liability(liability_id, amount_paid=50000)


def test_amount_paid_editable_without_payments(liability_service, liability_id):
    liability = liability_service.update_liability(liability_id, amount_paid=10000)

    assert liability.amount_paid == 10000
    assert liability.balance == 40000
    assert liability.status == LiabilityStatus.PARTIALLY_PAID

    # Recompute keeps a hand-entered amount while there are no payments
    assert liability_service.recompute(liability_id).amount_paid == 10000


def test_amount_paid_cannot_exceed_original(liability_service, liability_id):
    with pytest.raises(ValidationError):
        liability_service.update_liability(liability_id, amount_paid=60000)


def test_lowering_original_amount_rederives(liability_service, liability_id):
    liability_service.update_liability(liability_id, amount_paid=10000)
    liability = liability_service.update_liability(liability_id, original_amount=10000)

    assert liability.balance == 0
    assert liability.status == LiabilityStatus.PAID


def test_verify_heals_drifted_fields(orchestrator, liability_service, liability_id, make_account, temp_db):
    account_id = make_account("Main", 100000)
    orchestrator.pay_liability(liability_id, account_id, 20000)
    temp_db.update_liability(liability_id, amount_paid=0, balance=50000, status="Not Paid")

    liability = liability_service.verify(liability_id)

    assert liability.amount_paid == 20000
    assert liability.balance == 30000
    assert liability.status == LiabilityStatus.PARTIALLY_PAID


def test_unknown_category_rejected(liability_service):
    with pytest.raises(NotFoundError):
        liability_service.create_liability(
            date=date(2024, 2, 1),
            category="Nope",
            description="x",
            creditor="y",
            original_amount=100,
        )


def test_delete_blocked_by_payments(orchestrator, liability_service, liability_id, make_account):
    account_id = make_account("Main", 100000)
    orchestrator.pay_liability(liability_id, account_id, 100)

    with pytest.raises(DependencyError):
        liability_service.delete_liability(liability_id)


def test_delete_without_payments(liability_service, liability_id):
    liability_service.delete_liability(liability_id)
    assert liability_service.get_liability(liability_id) is None


def test_loan_duration_computed(liability_service):
    liability_id = liability_service.create_liability(
        date=date(2024, 1, 1),
        category="Loans/Overdrafts",
        description="Overdraft",
        creditor="GCB",
        original_amount=1000,
        is_loan=True,
        loan_start_date=date(2024, 1, 1),
        loan_end_date=date(2024, 3, 1),
    )
    assert liability_service.require_liability(liability_id).loan_duration_days == 60
