"""Repository for read-only catalog data: categories and their menu items."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from nook_ordering_service.models.db_models import CategoryMenuItem, MenuItem, ProductCategory


class CatalogRepository:
    """Lookups over ``product_category``, ``menu_item`` and their join."""

    def __init__(self, session: Session) -> None:
        """Initialize repository.

        Args:
            session: Session bound to the caller's transaction
        """
        self.session = session

    def list_active_categories(self) -> list[ProductCategory]:
        """List active categories ordered by id."""
        stmt = (
            select(ProductCategory)
            .where(ProductCategory.is_active.is_(True))
            .order_by(ProductCategory.id)
        )
        return list(self.session.scalars(stmt))

    def get_active_category(self, category_id: int) -> ProductCategory | None:
        """Get a category by id, treating inactive categories as missing."""
        category = self.session.get(ProductCategory, category_id)
        if category is None or not category.is_active:
            return None
        return category

    def find_active_categories_by_name(self, fragment: str) -> list[ProductCategory]:
        """Find active categories whose name contains ``fragment`` as plain text, ignoring case."""
        stmt = (
            select(ProductCategory)
            .where(
                ProductCategory.is_active.is_(True),
                ProductCategory.name.icontains(fragment, autoescape=True),
            )
            .order_by(ProductCategory.id)
        )
        return list(self.session.scalars(stmt))

    def list_menu_items_for_category(self, category_id: int) -> list[tuple[MenuItem, bool]]:
        """List active menu items offered by a category.

        Returns:
            Pairs of (menu item, is_default_included), ordered by item id
        """
        stmt = (
            select(MenuItem, CategoryMenuItem.is_default_included)
            .join(CategoryMenuItem, CategoryMenuItem.menu_item_id == MenuItem.id)
            .where(
                CategoryMenuItem.category_id == category_id,
                MenuItem.is_active.is_(True),
            )
            .order_by(MenuItem.id)
        )
        return [(item, bool(is_default)) for item, is_default in self.session.execute(stmt)]

    def get_menu_item_names(self, menu_item_ids: list[int]) -> dict[int, str]:
        """Look up names for the given menu item ids.

        Returns:
            Mapping of id to name; ids without a row are absent
        """
        if not menu_item_ids:
            return {}
        stmt = select(MenuItem.id, MenuItem.name).where(MenuItem.id.in_(menu_item_ids))
        return {item_id: name for item_id, name in self.session.execute(stmt)}
