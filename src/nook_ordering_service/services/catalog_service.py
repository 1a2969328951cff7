"""Catalog lookups: categories, their menu items and buffet tiers."""

import logging
from typing import Any

from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import (
    BuffetType,
    CategoryMinimum,
    CategoryOut,
    MenuItemOut,
)
from nook_ordering_service.observability.decorators import traced
from nook_ordering_service.repositories.catalog_repository import CatalogRepository
from nook_ordering_service.repositories.database import Database

logger = logging.getLogger(__name__)


def _fallback(item_id: int, name: str, description: str) -> MenuItemOut:
    return MenuItemOut(id=item_id, name=name, description=description, is_default=True)


# Served when the catalog join for a category yields no rows
FALLBACK_BASE_ITEMS: list[MenuItemOut] = [
    _fallback(1, "Sandwiches", "Mixed sandwich selection"),
    _fallback(2, "Quiche", "Freshly baked quiche"),
    _fallback(3, "Cocktail Sausages", "Mini cocktail sausages"),
    _fallback(4, "Sausage Rolls", "Homemade sausage rolls"),
    _fallback(5, "Pork Pies", "Traditional pork pies"),
    _fallback(6, "Scotch Eggs", "Fresh scotch eggs"),
    _fallback(7, "Tortillas/Dips", "Tortilla chips with dips"),
    _fallback(8, "Cakes", "Assorted cakes and desserts"),
]

FALLBACK_ENHANCED_ITEMS: list[MenuItemOut] = [
    _fallback(9, "Vegetable Sticks & Dips", "Fresh vegetable sticks with dips"),
    _fallback(10, "Cheese/Pineapple/Grapes", "Cheese and fruit platter"),
    _fallback(11, "Bread Sticks", "Crispy bread sticks"),
    _fallback(12, "Pickles", "Assorted pickles"),
    _fallback(13, "Coleslaw", "Fresh coleslaw"),
]

FALLBACK_DELUXE_ITEMS: list[MenuItemOut] = [
    _fallback(14, "Greek Salad", "Traditional Greek salad"),
    _fallback(15, "Potato Salad", "Creamy potato salad"),
    _fallback(16, "Tomato & Mozzarella Skewers", "Caprese skewers"),
    _fallback(17, "Fresh Vegetables", "Seasonal fresh vegetables"),
    _fallback(18, "Premium Dips", "Selection of premium dips"),
]

# Tiers in ascending order; each tier offers its own items plus those of every earlier tier
BUFFET_TIERS: list[tuple[BuffetType, list[MenuItemOut]]] = [
    (BuffetType.CLASSIC, FALLBACK_BASE_ITEMS),
    (BuffetType.ENHANCED, FALLBACK_ENHANCED_ITEMS),
    (BuffetType.DELUXE, FALLBACK_DELUXE_ITEMS),
]


def _to_menu_item(item: Any, is_default: bool) -> MenuItemOut:
    return MenuItemOut(
        id=item.id,
        name=item.name,
        description=item.description,
        item_type=item.item_type,
        is_vegetarian=item.is_vegetarian,
        is_default=is_default,
    )


def parse_category_id(value: Any) -> int:
    """Validate a category id sent by a client.

    Raises:
        OrderingError: ``MISSING_CATEGORY_ID`` or ``INVALID_CATEGORY_ID``
    """
    if value is None or value == "":
        raise OrderingError(
            ReturnCode.MISSING_CATEGORY_ID, "Category ID is required for get_by_id action"
        )
    if isinstance(value, bool):
        raise OrderingError(ReturnCode.INVALID_CATEGORY_ID, "Invalid category ID")
    try:
        return int(str(value).strip())
    except ValueError:
        raise OrderingError(ReturnCode.INVALID_CATEGORY_ID, "Invalid category ID")


class CatalogService:
    """Read-only access to categories and menu items."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @traced("catalog.get_all")
    async def get_all(self) -> list[CategoryOut]:
        with self.database.transaction() as session:
            categories = CatalogRepository(session).list_active_categories()
            return [CategoryOut.model_validate(category) for category in categories]

    @traced("catalog.get_by_id")
    async def get_by_id(self, category_id: Any) -> CategoryOut:
        """Get one active category.

        Args:
            category_id: Category id as sent by the client (int or numeric string)

        Raises:
            OrderingError: ``MISSING_CATEGORY_ID``, ``INVALID_CATEGORY_ID`` or
                ``CATEGORY_NOT_FOUND``
        """
        parsed_id = parse_category_id(category_id)
        with self.database.transaction() as session:
            category = CatalogRepository(session).get_active_category(parsed_id)
            if category is None:
                raise OrderingError(ReturnCode.CATEGORY_NOT_FOUND, "Category not found")
            return CategoryOut.model_validate(category)

    @traced("catalog.get_by_type")
    async def get_by_type(self, category_type: str | None) -> list[CategoryOut]:
        if not category_type or not category_type.strip():
            raise OrderingError(
                ReturnCode.MISSING_CATEGORY_TYPE, "Category type is required for get_by_type action"
            )
        with self.database.transaction() as session:
            categories = CatalogRepository(session).find_active_categories_by_name(
                category_type.strip()
            )
            return [CategoryOut.model_validate(category) for category in categories]

    @traced("catalog.menu_items")
    async def get_menu_items_for_category(self, category_id: int) -> list[MenuItemOut]:
        """List the menu items offered by a category.

        Falls back to the eight base items when the category has no linked items.
        """
        with self.database.transaction() as session:
            rows = CatalogRepository(session).list_menu_items_for_category(category_id)

        if not rows:
            logger.warning(f"No menu items linked to category {category_id}, using fallback items")
            return list(FALLBACK_BASE_ITEMS)
        return [_to_menu_item(item, is_default) for item, is_default in rows]

    @traced("catalog.buffet_items")
    async def get_buffet_items(self, buffet_type: str | None) -> list[MenuItemOut]:
        """List the items of a buffet tier, including those of all lower tiers.

        Raises:
            OrderingError: ``MISSING_BUFFET_TYPE`` or ``INVALID_BUFFET_TYPE``
        """
        if not buffet_type:
            raise OrderingError(
                ReturnCode.MISSING_BUFFET_TYPE, "Buffet type is required for get_by_buffet_type action"
            )
        try:
            requested = BuffetType(buffet_type)
        except ValueError:
            raise OrderingError(
                ReturnCode.INVALID_BUFFET_TYPE,
                "Invalid buffet type. Valid types: Classic, Enhanced, Deluxe",
            )

        items: list[MenuItemOut] = []
        seen: set[int] = set()
        with self.database.transaction() as session:
            repository = CatalogRepository(session)
            for tier, fallback in BUFFET_TIERS:
                for item in self._tier_items(repository, tier, fallback):
                    if item.id not in seen:
                        seen.add(item.id)
                        items.append(item)
                if tier == requested:
                    break
        return items

    def _tier_items(
        self, repository: CatalogRepository, tier: BuffetType, fallback: list[MenuItemOut]
    ) -> list[MenuItemOut]:
        categories = repository.find_active_categories_by_name(tier.value)
        if categories:
            rows = repository.list_menu_items_for_category(categories[0].id)
            if rows:
                return [_to_menu_item(item, is_default) for item, is_default in rows]
        logger.info(f"Using fallback items for {tier.value} buffet tier")
        return list(fallback)

    @traced("catalog.validation_info")
    async def get_validation_info(self) -> list[CategoryMinimum]:
        """Get the minimum order quantity of every active category (default 1)."""
        with self.database.transaction() as session:
            categories = CatalogRepository(session).list_active_categories()
            return [
                CategoryMinimum(
                    id=category.id,
                    name=category.name,
                    minimum_quantity=category.minimum_quantity or 1,
                )
                for category in categories
            ]
