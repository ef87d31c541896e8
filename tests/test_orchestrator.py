"""Tests for multi-step transaction recipes."""

from datetime import date
from decimal import Decimal
import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from orgledger.database.models import Transfer as TransferModel
from orgledger.domain.entities import LiabilityStatus, PostingKind
from orgledger.domain.errors import (
    ConflictError,
    InsufficientFunds,
    NotFoundError,
    OverpaymentError,
    PartialCommitError,
    ValidationError,
)
from orgledger.domain.orchestrator import Step


def balances(db, *account_ids):
    return tuple(db.get_account(account_id).balance for account_id in account_ids)


# Runner


def test_run_first_step_failure_reraises_original(orchestrator):
    def boom(ctx):
        raise InsufficientFunds("acc", 10, 0)

    with pytest.raises(InsufficientFunds):
        orchestrator.run("recipe", [Step("first", boom)])


def test_run_compensates_in_reverse_order(orchestrator):
    calls = []

    def fail(ctx):
        raise RuntimeError("disk full")

    steps = [
        Step("one", lambda ctx: calls.append("do one") or 1, lambda ctx: calls.append("undo one")),
        Step("two", lambda ctx: calls.append("do two") or 2, lambda ctx: calls.append("undo two")),
        Step("three", fail),
    ]

    with pytest.raises(PartialCommitError) as exc_info:
        orchestrator.run("recipe", steps)

    error = exc_info.value
    assert calls == ["do one", "do two", "undo two", "undo one"]
    assert error.completed_steps == ("one", "two")
    assert error.failed_step == "three"
    assert error.rolled_back is True
    assert isinstance(error.__cause__, RuntimeError)
    assert "disk full" in str(error)


def test_run_reports_failed_compensation(orchestrator):
    def fail(ctx):
        raise RuntimeError("boom")

    steps = [
        Step("one", lambda ctx: 1, fail),
        Step("two", fail),
    ]

    with pytest.raises(PartialCommitError) as exc_info:
        orchestrator.run("recipe", steps)

    assert exc_info.value.rolled_back is False
    assert exc_info.value.compensation_failures == ("one",)
    assert "ledger recalculate" in str(exc_info.value)


# Accounts


def test_create_account_with_opening_balance(orchestrator, temp_db):
    account_id = orchestrator.create_account_with_opening_balance(
        name="Main", account_type="Bank", opening_balance=150000, date=date(2024, 1, 1), bank_name="GCB"
    )

    account = temp_db.get_account(account_id)
    assert account.balance == 150000
    assert account.opening_balance == 150000
    assert account.bank_name == "GCB"

    postings = temp_db.list_postings(account_id=account_id)
    assert [(p.kind, p.amount, p.category) for p in postings] == [
        (PostingKind.OPENING_BALANCE, 150000, "Opening Balance")
    ]


def test_create_account_without_opening_balance_has_no_posting(orchestrator, temp_db):
    account_id = orchestrator.create_account_with_opening_balance(name="Cash box", account_type="Cash")
    assert temp_db.get_account(account_id).balance == 0
    assert temp_db.list_postings(account_id=account_id) == []


def test_create_account_validates_before_writing(orchestrator, make_account, temp_db):
    make_account("Main")

    with pytest.raises(ConflictError):
        orchestrator.create_account_with_opening_balance(name="Main", account_type="Cash")
    with pytest.raises(ValidationError):
        orchestrator.create_account_with_opening_balance(name="Other", account_type="Vault")
    with pytest.raises(ValidationError):
        orchestrator.create_account_with_opening_balance(name="Other", account_type="Cash", opening_balance=-1)

    assert [a.name for a in temp_db.list_accounts()] == ["Main"]


# Income and expenditure


def test_record_income_credits_account(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)
    posting_id = orchestrator.record_income(
        account_id, 2500, "Dues", date=date(2024, 3, 1), member_id="m-1", member_name="Ama"
    )

    posting = temp_db.get_posting(posting_id)
    assert posting.amount == 2500
    assert posting.kind == PostingKind.INCOME
    assert posting.member_name == "Ama"
    assert temp_db.get_account(account_id).balance == 3500


def test_record_income_unknown_category_writes_nothing(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)

    with pytest.raises(NotFoundError):
        orchestrator.record_income(account_id, 100, "Lottery")

    assert len(temp_db.list_postings(account_id=account_id)) == 1
    assert temp_db.get_account(account_id).balance == 1000


def test_record_expenditure_insufficient_funds_writes_nothing(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)

    with pytest.raises(InsufficientFunds):
        orchestrator.record_expenditure(account_id, 1001, "Utilities")

    assert temp_db.list_postings(account_id=account_id, kind=PostingKind.EXPENDITURE) == []
    assert temp_db.get_account(account_id).balance == 1000


def test_record_expenditure_debits_account(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)
    posting_id = orchestrator.record_expenditure(account_id, 400, "Utilities", reference="V-1")

    assert temp_db.get_posting(posting_id).amount == -400
    assert temp_db.get_account(account_id).balance == 600


# Transfers


def test_transfer_moves_money(orchestrator, make_account, temp_db):
    a = make_account("A", 70000)
    b = make_account("B", 20000)

    transfer_id = orchestrator.create_transfer(a, b, 10000, date=date(2024, 4, 1))

    assert balances(temp_db, a, b) == (60000, 30000)
    legs = temp_db.list_postings(transfer_id=transfer_id)
    assert [(leg.account_id, leg.kind, leg.amount) for leg in legs] == [
        (a, PostingKind.TRANSFER_OUT, -10000),
        (b, PostingKind.TRANSFER_IN, 10000),
    ]
    transfer = temp_db.get_transfer(transfer_id)
    assert transfer.from_account_name == "A"
    assert transfer.to_account_name == "B"


def test_transfer_destination_failure_rolls_back_source(orchestrator, make_account, temp_db, monkeypatch):
    """A failed destination credit undoes the source debit and reports the partial commit."""
    a = make_account("A", 70000)
    b = make_account("B", 20000)
    real_credit = orchestrator.ledger.credit

    def flaky_credit(account_id, amount):
        if account_id == b:
            raise RuntimeError("connection lost")
        return real_credit(account_id, amount)

    monkeypatch.setattr(orchestrator.ledger, "credit", flaky_credit)

    with pytest.raises(PartialCommitError) as exc_info:
        orchestrator.create_transfer(a, b, 10000)

    error = exc_info.value
    assert error.recipe == "create_transfer"
    assert error.completed_steps == ("debit source",)
    assert error.failed_step == "credit destination"
    assert error.rolled_back is True
    assert balances(temp_db, a, b) == (70000, 20000)
    assert temp_db.list_transfers() == []


def test_transfer_rejections(orchestrator, make_account, temp_db):
    a = make_account("A", 100)
    b = make_account("B", 0)

    with pytest.raises(InsufficientFunds):
        orchestrator.create_transfer(a, b, 101)
    with pytest.raises(ValidationError):
        orchestrator.create_transfer(a, a, 50)

    assert balances(temp_db, a, b) == (100, 0)


def test_delete_transfer_moves_money_back(orchestrator, make_account, temp_db):
    a = make_account("A", 1000)
    b = make_account("B", 0)
    transfer_id = orchestrator.create_transfer(a, b, 400)

    orchestrator.delete_transfer(transfer_id)

    assert balances(temp_db, a, b) == (1000, 0)
    assert temp_db.get_transfer(transfer_id) is None
    assert temp_db.list_postings(transfer_id=transfer_id) == []


def test_delete_transfer_needs_destination_funds(orchestrator, make_account, temp_db):
    a = make_account("A", 1000)
    b = make_account("B", 0)
    transfer_id = orchestrator.create_transfer(a, b, 400)
    orchestrator.record_expenditure(b, 300, "Utilities")

    with pytest.raises(InsufficientFunds):
        orchestrator.delete_transfer(transfer_id)

    assert temp_db.get_transfer(transfer_id) is not None


# Idempotency


def test_idempotency_key_replays_result(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)

    first = orchestrator.record_income(account_id, 500, "Donations", idempotency_key="receipt-17")
    second = orchestrator.record_income(account_id, 500, "Donations", idempotency_key="receipt-17")

    assert first == second
    assert temp_db.get_account(account_id).balance == 1500
    assert len(temp_db.list_postings(account_id=account_id, kind=PostingKind.INCOME)) == 1


def test_idempotency_key_reused_for_other_recipe(orchestrator, make_account):
    account_id = make_account("Main", 1000)
    orchestrator.record_income(account_id, 500, "Donations", idempotency_key="k1")

    with pytest.raises(ConflictError):
        orchestrator.record_expenditure(account_id, 100, "Utilities", idempotency_key="k1")


def test_idempotency_keys_are_per_organization(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)
    orchestrator.record_income(account_id, 500, "Donations", idempotency_key="k1")

    assert temp_db.get_operation("k1") is not None
    temp_db.organization_id = "org-b"
    assert temp_db.get_operation("k1") is None


# Liabilities and loans


def test_liability_with_initial_payment(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 10000)

    liability_id = orchestrator.create_liability_with_initial_payment(
        date=date(2024, 5, 1),
        category="Liabilities",
        description="Chairs",
        creditor="Furniture Co",
        original_amount=8000,
        initial_payment=3000,
        account_id=account_id,
    )

    liability = temp_db.get_liability(liability_id)
    assert liability.amount_paid == 3000
    assert liability.balance == 5000
    assert liability.status == LiabilityStatus.PARTIALLY_PAID
    assert temp_db.get_account(account_id).balance == 7000


def test_liability_initial_payment_validation(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)
    common = dict(
        date=date(2024, 5, 1),
        category="Liabilities",
        description="Chairs",
        creditor="Furniture Co",
        original_amount=8000,
    )

    with pytest.raises(ValidationError):
        orchestrator.create_liability_with_initial_payment(initial_payment=9000, account_id=account_id, **common)
    with pytest.raises(ValidationError):
        orchestrator.create_liability_with_initial_payment(initial_payment=500, **common)
    with pytest.raises(InsufficientFunds):
        orchestrator.create_liability_with_initial_payment(initial_payment=5000, account_id=account_id, **common)

    assert temp_db.list_liabilities() == []


def test_create_loan(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 0)

    liability_id = orchestrator.create_loan(
        account_id=account_id,
        lender="GCB",
        amount_received=500000,
        amount_payable=560000,
        date=date(2024, 6, 1),
        description="Roof repair",
        interest_rate=Decimal("12.00"),
        loan_start_date=date(2024, 6, 1),
        loan_end_date=date(2025, 6, 1),
    )

    loan = temp_db.get_liability(liability_id)
    assert loan.is_loan
    assert loan.original_amount == 560000
    assert loan.amount_received == 500000
    assert loan.category == "Loans/Overdrafts"
    assert loan.status == LiabilityStatus.NOT_PAID
    assert loan.loan_duration_days == 365

    income = temp_db.get_posting(loan.linked_income_posting_id)
    assert income.amount == 500000
    assert income.kind == PostingKind.INCOME
    assert temp_db.get_account(account_id).balance == 500000


def test_loan_payable_below_received_rejected(orchestrator, make_account):
    account_id = make_account("Main", 0)
    with pytest.raises(ValidationError):
        orchestrator.create_loan(
            account_id=account_id,
            lender="GCB",
            amount_received=1000,
            amount_payable=900,
            date=date(2024, 6, 1),
            description="Overdraft",
        )


# Posting edits


def test_delete_expenditure_restores_balance(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)
    posting_id = orchestrator.record_expenditure(account_id, 400, "Utilities")

    orchestrator.delete_posting(posting_id)

    assert temp_db.get_posting(posting_id) is None
    assert temp_db.get_account(account_id).balance == 1000


def test_delete_income_needs_funds(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 0)
    income_id = orchestrator.record_income(account_id, 500, "Donations")
    orchestrator.record_expenditure(account_id, 400, "Utilities")

    with pytest.raises(InsufficientFunds):
        orchestrator.delete_posting(income_id)

    assert temp_db.get_posting(income_id) is not None
    assert temp_db.get_account(account_id).balance == 100


def test_delete_liability_payment_rederives_liability(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 10000)
    liability_id = orchestrator.create_liability_with_initial_payment(
        date=date(2024, 5, 1),
        category="Liabilities",
        description="Chairs",
        creditor="Furniture Co",
        original_amount=8000,
    )
    payment_id = orchestrator.pay_liability(liability_id, account_id, 8000)
    assert temp_db.get_liability(liability_id).status == LiabilityStatus.PAID

    orchestrator.delete_posting(payment_id)

    liability = temp_db.get_liability(liability_id)
    assert liability.amount_paid == 0
    assert liability.status == LiabilityStatus.NOT_PAID
    assert temp_db.get_account(account_id).balance == 10000


def test_transfer_legs_and_opening_balances_not_deletable(orchestrator, make_account, temp_db):
    a = make_account("A", 1000)
    b = make_account("B", 0)
    transfer_id = orchestrator.create_transfer(a, b, 100)
    leg = temp_db.list_postings(transfer_id=transfer_id)[0]
    opening = temp_db.list_postings(account_id=a, kind=PostingKind.OPENING_BALANCE)[0]

    with pytest.raises(ValidationError):
        orchestrator.delete_posting(leg.id)
    with pytest.raises(ValidationError):
        orchestrator.delete_posting(opening.id)


def test_update_posting_amount_adjusts_ledger(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 1000)
    posting_id = orchestrator.record_expenditure(account_id, 400, "Utilities")

    orchestrator.update_posting_amount(posting_id, 250)
    assert temp_db.get_posting(posting_id).amount == -250
    assert temp_db.get_account(account_id).balance == 750

    with pytest.raises(InsufficientFunds):
        orchestrator.update_posting_amount(posting_id, 1001)
    assert temp_db.get_account(account_id).balance == 750


def test_update_payment_amount_checks_overpayment(orchestrator, make_account, temp_db):
    account_id = make_account("Main", 10000)
    liability_id = orchestrator.create_liability_with_initial_payment(
        date=date(2024, 5, 1),
        category="Liabilities",
        description="Chairs",
        creditor="Furniture Co",
        original_amount=5000,
    )
    payment_id = orchestrator.pay_liability(liability_id, account_id, 2000)

    orchestrator.update_posting_amount(payment_id, 5000)
    assert temp_db.get_liability(liability_id).status == LiabilityStatus.PAID

    with pytest.raises(OverpaymentError):
        orchestrator.update_posting_amount(payment_id, 5001)


# Store failures


def test_transfer_leg_failure_compensates_everything(orchestrator, make_account, temp_db, monkeypatch):
    a = make_account("A", 70000)
    b = make_account("B", 20000)
    real_create_posting = temp_db.create_posting

    def failing_create_posting(**kwargs):
        if kwargs["kind"] == PostingKind.TRANSFER_IN:
            raise RuntimeError("database is locked")
        return real_create_posting(**kwargs)

    monkeypatch.setattr(temp_db, "create_posting", failing_create_posting)

    with pytest.raises(PartialCommitError) as exc_info:
        orchestrator.create_transfer(a, b, 10000)

    assert exc_info.value.completed_steps == (
        "debit source",
        "credit destination",
        "record transfer",
        "post source leg",
    )
    assert exc_info.value.rolled_back
    assert balances(temp_db, a, b) == (70000, 20000)
    assert temp_db.list_transfers() == []
    assert temp_db.list_postings(kind=PostingKind.TRANSFER_OUT) == []


def test_income_credit_failure_removes_posting(orchestrator, make_account, temp_db, monkeypatch):
    account_id = make_account("Main", 1000)

    def failing_adjust(account_id, delta):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(temp_db, "adjust_account_balance", failing_adjust)

    with pytest.raises(PartialCommitError) as exc_info:
        orchestrator.record_income(account_id, 500, "Donations", idempotency_key="r-1")

    assert exc_info.value.failed_step == "credit account"
    assert temp_db.list_postings(account_id=account_id, kind=PostingKind.INCOME) == []
    assert temp_db.get_account(account_id).balance == 1000
    # A failed recipe does not consume its key
    assert temp_db.get_operation("r-1") is None


@pytest.fixture
def failing_transfer_insert():
    """Make every flush of a new transfer row fail inside SQLAlchemy."""

    def boom(mapper, connection, target):
        raise OperationalError("INSERT INTO transfers", {}, Exception("disk I/O error"))

    event.listen(TransferModel, "before_insert", boom)
    yield
    event.remove(TransferModel, "before_insert", boom)


def test_flush_failure_compensates_and_keeps_store_usable(
    orchestrator, make_account, temp_db, failing_transfer_insert
):
    a = make_account("A", 70000)
    b = make_account("B", 20000)

    with pytest.raises(PartialCommitError) as exc_info:
        orchestrator.create_transfer(a, b, 10000)

    assert exc_info.value.failed_step == "record transfer"
    assert exc_info.value.rolled_back
    assert exc_info.value.compensation_failures == ()
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert balances(temp_db, a, b) == (70000, 20000)
    assert temp_db.list_transfers() == []

    # The same store keeps working after the failed flush
    orchestrator.record_expenditure(a, 500, "Utilities")
    assert balances(temp_db, a, b) == (69500, 20000)
