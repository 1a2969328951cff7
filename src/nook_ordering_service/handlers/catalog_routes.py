"""Catalog endpoints: ``/api/categories`` and ``/api/buffet-items``.

Both take an ``action`` in the body; each action maps to exactly one handler.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.handlers.responses import success
from nook_ordering_service.models.api_models import (
    BuffetItemsAction,
    BuffetItemsRequest,
    CategoryAction,
    CategoryRequest,
)
from nook_ordering_service.services.catalog_service import CatalogService

CategoryHandler = Callable[[CatalogService, CategoryRequest], Awaitable[dict[str, Any]]]


async def _get_all(catalog: CatalogService, body: CategoryRequest) -> dict[str, Any]:
    categories = await catalog.get_all()
    return {
        "message": "Categories retrieved successfully",
        "categories": [category.model_dump() for category in categories],
    }


async def _get_by_id(catalog: CatalogService, body: CategoryRequest) -> dict[str, Any]:
    category = await catalog.get_by_id(body.category_id)
    menu_items = await catalog.get_menu_items_for_category(category.id)
    return {
        "message": "Category retrieved successfully",
        "category": category.model_dump(),
        "menu_items": [item.model_dump() for item in menu_items],
    }


async def _get_by_type(catalog: CatalogService, body: CategoryRequest) -> dict[str, Any]:
    categories = await catalog.get_by_type(body.category_type)
    return {
        "message": "Categories retrieved successfully",
        "categories": [category.model_dump() for category in categories],
    }


CATEGORY_HANDLERS: dict[CategoryAction, CategoryHandler] = {
    CategoryAction.GET_ALL: _get_all,
    CategoryAction.GET_BY_ID: _get_by_id,
    CategoryAction.GET_BY_TYPE: _get_by_type,
}

if set(CATEGORY_HANDLERS) != set(CategoryAction):
    raise RuntimeError("Every category action needs a handler")


def parse_action(action: str | None, action_type: type, supported: str) -> Any:
    """Convert the body's ``action`` into its enum member.

    Raises:
        OrderingError: ``MISSING_ACTION`` or ``INVALID_ACTION``
    """
    if not action:
        raise OrderingError(ReturnCode.MISSING_ACTION, "Action parameter is required")
    try:
        return action_type(action)
    except ValueError:
        raise OrderingError(
            ReturnCode.INVALID_ACTION, f"Invalid action. Supported actions: {supported}"
        )


def register_catalog_routes(app: FastAPI) -> None:
    """Register the catalog endpoints on the application."""

    @app.post("/api/categories", tags=["Catalog"])
    async def categories(body: CategoryRequest) -> JSONResponse:
        """List or look up product categories."""
        action = parse_action(body.action, CategoryAction, "get_all, get_by_id, get_by_type")
        payload = await CATEGORY_HANDLERS[action](app.state.catalog_service, body)
        return success(**payload)

    @app.post("/api/buffet-items", tags=["Catalog"])
    async def buffet_items(body: BuffetItemsRequest) -> JSONResponse:
        """List the items of a buffet tier."""
        parse_action(body.action, BuffetItemsAction, "get_by_buffet_type")
        items = await app.state.catalog_service.get_buffet_items(body.buffet_type)
        return success(
            "Buffet items retrieved successfully",
            items=[item.model_dump() for item in items],
        )
