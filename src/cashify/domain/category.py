"""Category domain service."""

from typing import Optional

from cashify.database.base import Database
from cashify.domain.business import BusinessService
from cashify.domain.entities import Category, CategoryKind
from cashify.domain.errors import ConflictError, NotFoundError, ValidationError, category_not_found, duplicate_name


class CategoryService:
    """Service for managing income and expense categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, business_id: int, name: str, kind: CategoryKind | str) -> int:
        """Create a category.

        Args:
            business_id: Owning business
            name: Category name
            kind: income or expense

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty or the kind is unknown
            ConflictError: If a category with the same name and kind exists
        """
        BusinessService(self.db).require_business(business_id)
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        try:
            kind = CategoryKind(kind)
        except ValueError:
            raise ValidationError(f"Invalid category kind '{kind}'")
        name = name.strip()

        for category in self.db.list_categories(business_id, kind=kind.value):
            if category.name == name:
                raise ConflictError(duplicate_name(f"{kind.value.capitalize()} category", name))

        return self.db.create_category(business_id, name=name, kind=kind.value)

    def get_category(self, business_id: int, category_id: int) -> Optional[Category]:
        return self.db.get_category(business_id, category_id)

    def require_category(self, business_id: int, category_id: int) -> Category:
        category = self.db.get_category(business_id, category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        return category

    def list_categories(
        self, business_id: int, kind: Optional[CategoryKind | str] = None
    ) -> list[Category]:
        """List categories of a business, optionally only one kind."""
        kind_value = CategoryKind(kind).value if kind is not None else None
        return self.db.list_categories(business_id, kind=kind_value)
