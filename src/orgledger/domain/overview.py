"""Finance overview: organization-wide totals."""

from typing import Optional
from datetime import date

from orgledger.database.base import Database
from orgledger.domain.entities import FinanceOverview, PostingKind


class OverviewService:
    """Service for summary figures across all accounts."""

    def __init__(self, db: Database):
        """Initialize overview service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_overview(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> FinanceOverview:
        """Totals for a period.

        Income and expenditure count only income and expenditure postings in
        the date range; transfers move money between accounts and are left
        out. The total balance and outstanding liabilities are current values.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date

        Returns:
            FinanceOverview with amounts in minor units
        """
        accounts = self.db.list_accounts()
        income = self.db.list_postings(kind=PostingKind.INCOME, start_date=start_date, end_date=end_date)
        spending = self.db.list_postings(
            kind=PostingKind.EXPENDITURE, start_date=start_date, end_date=end_date
        )
        liabilities = self.db.list_liabilities()

        return FinanceOverview(
            total_balance=sum(a.balance for a in accounts),
            total_income=sum(p.amount for p in income),
            total_expenditure=-sum(p.amount for p in spending),
            outstanding_liabilities=sum(li.balance for li in liabilities),
            account_count=len(accounts),
        )
