"""Budget domain service.

A budget caps spending in one expense category for a period. Only the
budgeted amount is stored; ``spent`` is summed from expenditure postings in
that category and period every time a budget is read, so it can never drift
from the ledger.
"""

from dataclasses import replace
from typing import Optional

from orgledger.database.base import Database
from orgledger.domain.category import CategoryService
from orgledger.domain.entities import Budget, CategoryType, PostingKind
from orgledger.domain.errors import EntityNotFound, ValidationError
from orgledger.utils.date_parser import get_budget_period_range, normalize_budget_period


def validate_budgeted(budgeted: int) -> None:
    """Check a budgeted amount is a non-negative integer number of minor units.

    Raises:
        ValidationError: If it is not
    """
    if isinstance(budgeted, bool) or not isinstance(budgeted, int):
        raise ValidationError("Budgeted amount must be an integer number of minor units")
    if budgeted < 0:
        raise ValidationError("Budgeted amount cannot be negative")


class BudgetService:
    """Service for expense budgets."""

    def __init__(self, db: Database):
        """Initialize budget service.

        Args:
            db: Database instance
        """
        self.db = db
        self.categories = CategoryService(db)

    def _period(self, period: str) -> str:
        try:
            return normalize_budget_period(period)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def _with_spent(self, budget: Budget) -> Budget:
        start, end = get_budget_period_range(budget.period)
        return replace(budget, spent=self.db.sum_category_expenditure(budget.category, start, end))

    def create_budget(self, category: str, period: str, budgeted: int) -> str:
        """Create a budget for an expense category.

        Args:
            category: Existing expense category name
            period: YYYY, YYYY-MM or YYYY-Qn
            budgeted: Limit in minor units; zero is allowed

        Returns:
            Budget ID

        Raises:
            ValidationError: If the period or amount is invalid
            NotFoundError: If the expense category does not exist
            ConflictError: If the category already has a budget for the period
        """
        period = self._period(period)
        validate_budgeted(budgeted)
        self.categories.require_category(category, CategoryType.EXPENSE)
        return self.db.create_budget(category=category, period=period, budgeted=budgeted)

    def get_budget(self, budget_id: str) -> Optional[Budget]:
        """Get a budget with its spent amount, or None."""
        budget = self.db.get_budget(budget_id)
        if budget is None:
            return None
        return self._with_spent(budget)

    def require_budget(self, budget_id: str) -> Budget:
        """Get a budget with its spent amount.

        Raises:
            EntityNotFound: If budget not found
        """
        budget = self.get_budget(budget_id)
        if budget is None:
            raise EntityNotFound("Budget", budget_id)
        return budget

    def list_budgets(
        self, period: Optional[str] = None, category: Optional[str] = None
    ) -> list[Budget]:
        """List budgets with spent amounts, optionally for one period or category."""
        if period is not None:
            period = self._period(period)
        return [self._with_spent(b) for b in self.db.list_budgets(period=period, category=category)]

    def update_budget(
        self,
        budget_id: str,
        category: Optional[str] = None,
        period: Optional[str] = None,
        budgeted: Optional[int] = None,
    ) -> Budget:
        """Change a budget's category, period or budgeted amount.

        Spent is not an input; it follows from the postings.

        Raises:
            EntityNotFound: If budget not found
            ValidationError: If the period or amount is invalid
            NotFoundError: If the new expense category does not exist
            ConflictError: If the change collides with another budget
        """
        if self.db.get_budget(budget_id) is None:
            raise EntityNotFound("Budget", budget_id)
        if period is not None:
            period = self._period(period)
        if budgeted is not None:
            validate_budgeted(budgeted)
        if category is not None:
            self.categories.require_category(category, CategoryType.EXPENSE)

        self.db.update_budget(budget_id, category=category, period=period, budgeted=budgeted)
        return self.require_budget(budget_id)

    def delete_budget(self, budget_id: str) -> None:
        """Delete a budget.

        Raises:
            EntityNotFound: If budget not found
        """
        self.db.delete_budget(budget_id)

    def postings(self, budget_id: str):
        """Expenditure postings counted towards a budget, in commit order."""
        budget = self.require_budget(budget_id)
        start, end = get_budget_period_range(budget.period)
        return self.db.list_postings(
            kind=PostingKind.EXPENDITURE, category=budget.category, start_date=start, end_date=end
        )
