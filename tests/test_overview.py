"""Tests for the finance overview."""

from datetime import date

from orgledger.domain.overview import OverviewService


def test_overview_totals(temp_db, orchestrator, make_account):
    a = make_account("A", 10000)
    b = make_account("B", 0)
    orchestrator.record_income(a, 5000, "Dues", date=date(2024, 3, 5))
    orchestrator.record_expenditure(a, 2000, "Utilities", date=date(2024, 3, 6))
    orchestrator.record_income(a, 700, "Donations", date=date(2024, 4, 1))
    orchestrator.create_transfer(a, b, 1000, date=date(2024, 3, 7))
    orchestrator.create_liability_with_initial_payment(
        date=date(2024, 3, 1),
        category="Liabilities",
        description="Chairs",
        creditor="Furniture Co",
        original_amount=3000,
    )

    overview = OverviewService(temp_db).get_overview(date(2024, 3, 1), date(2024, 3, 31))

    assert overview.account_count == 2
    assert overview.total_balance == 13700
    assert overview.total_income == 5000
    assert overview.total_expenditure == 2000
    assert overview.net_income == 3000
    assert overview.outstanding_liabilities == 3000
