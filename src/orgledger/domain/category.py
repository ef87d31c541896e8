"""Finance category domain service."""

from typing import Optional
from orgledger.database.base import Database
from orgledger.domain.entities import Category, CategoryType
from orgledger.domain.errors import (
    DependencyError,
    EntityNotFound,
    NotFoundError,
    ValidationError,
    category_not_found,
    default_category_locked,
)

OPENING_BALANCE_CATEGORY = "Opening Balance"
ASSET_DISPOSAL_CATEGORY = "Asset Disposal"
LIABILITIES_CATEGORY = "Liabilities"
LOANS_CATEGORY = "Loans/Overdrafts"

# System categories other records depend on by name
DEFAULT_CATEGORIES: dict[CategoryType, tuple[str, ...]] = {
    CategoryType.INCOME: (OPENING_BALANCE_CATEGORY, ASSET_DISPOSAL_CATEGORY),
    CategoryType.EXPENSE: (),
    CategoryType.LIABILITY: (LIABILITIES_CATEGORY, LOANS_CATEGORY),
}


def is_default_category(name: str, category_type: CategoryType) -> bool:
    return name in DEFAULT_CATEGORIES[CategoryType(category_type)]


class CategoryService:
    """Service for managing income, expense and liability categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        name: str,
        category_type: str,
        description: Optional[str] = None,
        track_members: bool = False,
    ) -> str:
        """Create a category.

        Args:
            name: Category name, unique within its type
            category_type: income, expense or liability
            description: Optional description
            track_members: Record the contributing member on income postings

        Returns:
            Category ID

        Raises:
            ValidationError: If name is empty, type unknown, or track_members set on a non-income type
            ConflictError: If the category already exists
        """
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        parsed_type = self._parse_type(category_type)
        if track_members and parsed_type != CategoryType.INCOME:
            raise ValidationError("Only income categories can track members")
        return self.db.create_category(
            name=name.strip(),
            category_type=parsed_type.value,
            description=description,
            track_members=track_members,
        )

    def get_category(self, category_id: str) -> Optional[Category]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def list_categories(self, category_type: Optional[str] = None) -> list[Category]:
        """List categories, optionally of one type."""
        if category_type is not None:
            category_type = self._parse_type(category_type).value
        return self.db.list_categories(category_type=category_type)

    def require_category(self, name: str, category_type: CategoryType) -> Category:
        """Look up a category by name within a type.

        Raises:
            NotFoundError: If no such category exists
        """
        category = self.db.get_category_by_name(name, CategoryType(category_type).value)
        if category is None:
            raise NotFoundError(category_not_found(name, CategoryType(category_type).value))
        return category

    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        track_members: Optional[bool] = None,
    ) -> None:
        """Rename or edit a category.

        Raises:
            EntityNotFound: If category not found
            ValidationError: If the category is a default system category
        """
        category = self._require_by_id(category_id)
        if is_default_category(category.name, category.category_type):
            raise ValidationError(default_category_locked(category.name))
        if track_members and category.category_type != CategoryType.INCOME:
            raise ValidationError("Only income categories can track members")
        self.db.update_category(
            category_id, name=name, description=description, track_members=track_members
        )

    def delete_category(self, category_id: str) -> None:
        """Delete a category that nothing uses.

        Raises:
            EntityNotFound: If category not found
            ValidationError: If the category is a default system category
            DependencyError: If postings, liabilities or budgets use the category
        """
        category = self._require_by_id(category_id)
        if is_default_category(category.name, category.category_type):
            raise ValidationError(default_category_locked(category.name))

        if category.category_type == CategoryType.LIABILITY:
            in_use = any(li.category == category.name for li in self.db.list_liabilities())
        else:
            in_use = any(
                p.entry_type.value == self._entry_side(category.category_type)
                for p in self.db.list_postings(category=category.name)
            )
            if category.category_type == CategoryType.EXPENSE and not in_use:
                in_use = bool(self.db.list_budgets(category=category.name))
        if in_use:
            raise DependencyError(
                f"Cannot delete category '{category.name}': it is in use by {category.category_type.value} records"
            )
        self.db.delete_category(category_id)

    def init_default_categories(self) -> int:
        """Create any missing default system categories.

        Returns:
            Number of categories created
        """
        created = 0
        for category_type, names in DEFAULT_CATEGORIES.items():
            for name in names:
                if self.db.get_category_by_name(name, category_type.value) is None:
                    self.db.create_category(name=name, category_type=category_type.value)
                    created += 1
        return created

    def _require_by_id(self, category_id: str) -> Category:
        category = self.db.get_category(category_id)
        if category is None:
            raise EntityNotFound("Category", category_id)
        return category

    @staticmethod
    def _entry_side(category_type: CategoryType) -> str:
        return "income" if category_type == CategoryType.INCOME else "expenditure"

    @staticmethod
    def _parse_type(category_type: str) -> CategoryType:
        try:
            return CategoryType(category_type)
        except ValueError:
            valid = ", ".join(t.value for t in CategoryType)
            raise ValidationError(f"Unknown category type '{category_type}'. Valid types: {valid}")
