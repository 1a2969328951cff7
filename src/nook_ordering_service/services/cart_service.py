"""Cart engine: one mutable ``cart`` order per owner and its category lines.

Each cart action is handled by one method, registered in a table keyed by
``CartAction``. Every mutation runs inside a single database transaction.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.orm import Session

from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import (
    CartAction,
    CartContents,
    CartLine,
    CartRequest,
    SelectedItem,
    SessionClaims,
)
from nook_ordering_service.models.db_models import Order
from nook_ordering_service.observability.decorators import traced
from nook_ordering_service.observability.metrics import record_cart_operation
from nook_ordering_service.repositories.catalog_repository import CatalogRepository
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.repositories.order_repository import CENTS, OrderRepository
from nook_ordering_service.services.catalog_service import BUFFET_TIERS, CatalogService

logger = logging.getLogger(__name__)

_FALLBACK_NAMES = {item.id: item.name for _, items in BUFFET_TIERS for item in items}


@dataclass(frozen=True)
class CartOwner:
    """Resolved owner of a cart: a user id, or a guest session id when there is none."""

    user_id: int | None = None
    session_id: str | None = None

    def describe(self) -> str:
        return f"user {self.user_id}" if self.user_id else f"session {self.session_id}"


def resolve_owner(
    user_id: int | None,
    session_id: str | None,
    claims: SessionClaims | None = None,
) -> CartOwner:
    """Resolve the owner identity of a cart or order request.

    A numeric user id wins over a session id. When the caller also sent a
    valid session token, the body's user id must match the token's.

    Args:
        user_id: User id from the request body
        session_id: Guest session id from the request body
        claims: Claims of the caller's session token, if one was sent

    Returns:
        CartOwner for the request

    Raises:
        OrderingError: ``MISSING_USER_SESSION`` or ``USER_MISMATCH``
    """
    if user_id:
        if claims is not None and claims.user_id != user_id:
            logger.warning(f"Session user {claims.user_id} sent a request for user {user_id}")
            raise OrderingError(
                ReturnCode.USER_MISMATCH, "user_id does not match the authenticated user"
            )
        return CartOwner(user_id=user_id)
    if session_id:
        return CartOwner(session_id=session_id)
    raise OrderingError(ReturnCode.MISSING_USER_SESSION, "Either user_id or session_id is required")


def find_cart(repository: OrderRepository, owner: CartOwner) -> Order | None:
    if owner.user_id:
        return repository.get_cart_for_user(owner.user_id)
    return repository.get_cart_for_session(owner.session_id or "")


def load_order_lines(session: Session, order_id: int) -> list[CartLine]:
    """Load an order's category lines with the names of their selected items.

    Items without a ``menu_item`` row are named from the fallback catalog.
    """
    lines = OrderRepository(session).list_order_categories(order_id)
    item_ids = sorted({item.menu_item_id for line in lines for item in line.items})
    names = {**_FALLBACK_NAMES, **CatalogRepository(session).get_menu_item_names(item_ids)}

    return [
        CartLine(
            id=line.id,
            category_id=line.category_id,
            category_name=line.category.name if line.category else None,
            quantity=line.quantity,
            unit_price=float(line.unit_price),
            total_price=float(line.total_price),
            notes=line.notes,
            department_label=line.department_label,
            deluxe_format=line.deluxe_format,
            included_items=[
                SelectedItem(menu_item_id=item.menu_item_id, name=names.get(item.menu_item_id))
                for item in line.items
            ],
        )
        for line in lines
    ]


def _contents(lines: list[CartLine]) -> CartContents:
    total = sum((Decimal(str(line.total_price)) for line in lines), Decimal("0"))
    return CartContents(cart_items=lines, total_amount=float(total.quantize(CENTS)))


class CartService:
    """Handles the ``add``, ``get``, ``delete``, ``clear`` and ``validation`` cart actions."""

    def __init__(self, database: Database, catalog_service: CatalogService) -> None:
        """Initialize the CartService.

        Args:
            database: Database handle
            catalog_service: Catalog used for per-category minimum quantities

        Raises:
            RuntimeError: If a cart action has no handler
        """
        self.database = database
        self.catalog_service = catalog_service
        self._handlers: dict[CartAction, Callable[[CartOwner, CartRequest], Awaitable[dict[str, Any]]]] = {
            CartAction.ADD: self._handle_add,
            CartAction.GET: self._handle_get,
            CartAction.DELETE: self._handle_delete,
            CartAction.CLEAR: self._handle_clear,
            CartAction.VALIDATION: self._handle_validation,
        }
        unhandled = set(CartAction) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler for cart actions: {sorted(a.value for a in unhandled)}")

    async def dispatch(self, request: CartRequest, claims: SessionClaims | None = None) -> dict[str, Any]:
        """Run the cart action named in the request.

        Args:
            request: Cart request body
            claims: Claims of the caller's session token, if one was sent

        Returns:
            Response payload including its message

        Raises:
            OrderingError: ``MISSING_ACTION``, ``INVALID_ACTION`` or any error of the action
        """
        if not request.action:
            raise OrderingError(ReturnCode.MISSING_ACTION, "Action parameter is required")
        owner = resolve_owner(request.user_id, request.session_id, claims)
        try:
            action = CartAction(request.action)
        except ValueError:
            raise OrderingError(
                ReturnCode.INVALID_ACTION,
                "Invalid action. Supported actions: add, get, delete, clear, validation",
            )

        payload = await self._handlers[action](owner, request)
        record_cart_operation(action.value)
        return payload

    # --- Actions --------------------------------------------------------------------------------

    @traced("cart.add")
    async def add_item(
        self,
        owner: CartOwner,
        category_id: int | None,
        quantity: int | None,
        unit_price: Decimal | None,
        included_items: list[int] | None,
        notes: str | None = None,
        department_label: str | None = None,
        deluxe_format: str | None = None,
    ) -> CartContents:
        """Add a priced category line with its selected items to the owner's cart.

        Creates the cart if the owner has none. The cart, the line and all of
        its items are written in one transaction.

        Raises:
            OrderingError: ``MISSING_REQUIRED_FIELDS``, ``VALIDATION_ERROR`` or
                ``CATEGORY_NOT_FOUND``
        """
        if not category_id or not quantity or not unit_price or included_items is None:
            raise OrderingError(
                ReturnCode.MISSING_REQUIRED_FIELDS,
                "category_id, quantity, unit_price, and included_items are required",
            )
        if quantity < 0 or unit_price < 0:
            raise OrderingError(
                ReturnCode.VALIDATION_ERROR, "quantity and unit_price must be positive"
            )

        # Line totals use the price as stored, at two decimal places
        unit_price = unit_price.quantize(CENTS, rounding=ROUND_HALF_UP)
        total_price = Decimal(quantity) * unit_price

        with self.database.transaction() as session:
            if CatalogRepository(session).get_active_category(category_id) is None:
                raise OrderingError(ReturnCode.CATEGORY_NOT_FOUND, "Category not found")

            orders = OrderRepository(session)
            cart = find_cart(orders, owner) or orders.create_cart(owner.user_id, owner.session_id)
            line = orders.add_order_category(
                order_id=cart.id,
                category_id=category_id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=total_price,
                notes=notes or None,
                department_label=department_label or None,
                deluxe_format=deluxe_format or None,
            )
            for menu_item_id in included_items:
                orders.add_order_item(cart.id, line.id, menu_item_id)

            lines = load_order_lines(session, cart.id)

        logger.info(f"Added category {category_id} x{quantity} to cart {cart.id} of {owner.describe()}")
        return _contents(lines)

    @traced("cart.get")
    async def get_cart(self, owner: CartOwner) -> CartContents:
        """Get the owner's cart; an owner without a cart has an empty one."""
        with self.database.transaction() as session:
            cart = find_cart(OrderRepository(session), owner)
            if cart is None:
                return CartContents()
            return _contents(load_order_lines(session, cart.id))

    @traced("cart.delete")
    async def remove_item(self, owner: CartOwner, order_category_id: int | None) -> CartContents:
        """Remove one line, and its items, from the owner's cart.

        Raises:
            OrderingError: ``MISSING_REQUIRED_FIELDS``, ``CART_EMPTY`` or ``ITEM_NOT_FOUND``
        """
        if not order_category_id:
            raise OrderingError(ReturnCode.MISSING_REQUIRED_FIELDS, "order_category_id is required")

        with self.database.transaction() as session:
            orders = OrderRepository(session)
            cart = find_cart(orders, owner)
            if cart is None:
                raise OrderingError(ReturnCode.CART_EMPTY, "Cart is empty")
            if not orders.delete_order_category(order_category_id, cart.id):
                raise OrderingError(ReturnCode.ITEM_NOT_FOUND, "Cart item not found")
            lines = load_order_lines(session, cart.id)

        return _contents(lines)

    @traced("cart.clear")
    async def clear_cart(self, owner: CartOwner) -> CartContents:
        """Delete the owner's cart order entirely, if there is one."""
        with self.database.transaction() as session:
            orders = OrderRepository(session)
            cart = find_cart(orders, owner)
            if cart is not None:
                orders.delete_order(cart.id)
                logger.info(f"Cleared cart {cart.id} of {owner.describe()}")
        return CartContents()

    # --- Dispatch adapters ----------------------------------------------------------------------

    async def _handle_add(self, owner: CartOwner, request: CartRequest) -> dict[str, Any]:
        contents = await self.add_item(
            owner,
            category_id=request.category_id,
            quantity=request.quantity,
            unit_price=request.unit_price,
            included_items=request.included_items,
            notes=request.notes,
            department_label=request.department_label,
            deluxe_format=request.deluxe_format,
        )
        return {"message": "Item added to cart successfully", **contents.model_dump()}

    async def _handle_get(self, owner: CartOwner, request: CartRequest) -> dict[str, Any]:
        contents = await self.get_cart(owner)
        return {"message": "Cart retrieved successfully", **contents.model_dump()}

    async def _handle_delete(self, owner: CartOwner, request: CartRequest) -> dict[str, Any]:
        contents = await self.remove_item(owner, request.order_category_id)
        return {"message": "Item removed from cart successfully", **contents.model_dump()}

    async def _handle_clear(self, owner: CartOwner, request: CartRequest) -> dict[str, Any]:
        contents = await self.clear_cart(owner)
        return {"message": "Cart cleared successfully", **contents.model_dump()}

    async def _handle_validation(self, owner: CartOwner, request: CartRequest) -> dict[str, Any]:
        categories = await self.catalog_service.get_validation_info()
        return {
            "message": "Validation info retrieved successfully",
            "categories": [category.model_dump() for category in categories],
        }
