"""Repository for orders, their category lines and selected items.

The "one cart per owner" rule is enforced by callers looking up the cart
before creating one; there is no database constraint backing it.
"""

import logging
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from nook_ordering_service.models.db_models import (
    CART_DELIVERY_PLACEHOLDER,
    Order,
    OrderCategory,
    OrderItem,
    OrderStatus,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class OrderRepository:
    """CRUD operations on ``orders``, ``order_category`` and ``order_item``."""

    def __init__(self, session: Session) -> None:
        """Initialize repository.

        Args:
            session: Session bound to the caller's transaction
        """
        self.session = session

    # --- Cart lookup ----------------------------------------------------------------------------

    def get_cart_for_user(self, user_id: int) -> Order | None:
        """Get the open cart of a registered user, if there is one."""
        stmt = (
            select(Order)
            .where(Order.app_user_id == user_id, Order.order_status == OrderStatus.CART.value)
            .order_by(Order.id)
            .limit(1)
        )
        return self.session.scalar(stmt)

    def get_cart_for_session(self, session_id: str) -> Order | None:
        """Get the open guest cart stored under a session identifier, if there is one."""
        stmt = (
            select(Order)
            .where(
                Order.app_user_id.is_(None),
                Order.guest_email == session_id,
                Order.order_status == OrderStatus.CART.value,
            )
            .order_by(Order.id)
            .limit(1)
        )
        return self.session.scalar(stmt)

    def create_cart(self, user_id: int | None, session_id: str | None) -> Order:
        """Insert an empty cart order with placeholder delivery details."""
        now = datetime.now(UTC)
        order = Order(
            app_user_id=user_id,
            guest_email=None if user_id else session_id,
            total_amount=Decimal("0"),
            order_status=OrderStatus.CART.value,
            delivery_type=CART_DELIVERY_PLACEHOLDER,
            requested_date=now.date(),
            requested_time=now.replace(tzinfo=None),
            created_at=now,
            updated_at=now,
        )
        self.session.add(order)
        self.session.flush()
        logger.info(f"Created cart order {order.id}")
        return order

    # --- Lines ----------------------------------------------------------------------------------

    def add_order_category(
        self,
        order_id: int,
        category_id: int,
        quantity: int,
        unit_price: Decimal,
        total_price: Decimal,
        notes: str | None = None,
        department_label: str | None = None,
        deluxe_format: str | None = None,
    ) -> OrderCategory:
        """Insert a priced category line into an order.

        Returns:
            The persisted line with its id assigned
        """
        line = OrderCategory(
            order_id=order_id,
            category_id=category_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            notes=notes,
            department_label=department_label,
            deluxe_format=deluxe_format,
        )
        self.session.add(line)
        self.session.flush()
        return line

    def add_order_item(self, order_id: int, order_category_id: int, menu_item_id: int) -> OrderItem:
        """Attach one selected menu item to a line.

        ``menu_item_id`` is not checked against ``menu_item``; fallback
        catalog ids have no row there.
        """
        item = OrderItem(
            order_id=order_id,
            order_category_id=order_category_id,
            menu_item_id=menu_item_id,
        )
        self.session.add(item)
        self.session.flush()
        return item

    def get_order_category(self, order_category_id: int, order_id: int) -> OrderCategory | None:
        """Get a line only if it belongs to the given order."""
        stmt = select(OrderCategory).where(
            OrderCategory.id == order_category_id, OrderCategory.order_id == order_id
        )
        return self.session.scalar(stmt)

    def list_order_categories(self, order_id: int) -> list[OrderCategory]:
        """List an order's lines with their category and selected items loaded."""
        stmt = (
            select(OrderCategory)
            .where(OrderCategory.order_id == order_id)
            .options(selectinload(OrderCategory.items), selectinload(OrderCategory.category))
            .order_by(OrderCategory.id)
        )
        return list(self.session.scalars(stmt))

    def delete_order_category(self, order_category_id: int, order_id: int) -> bool:
        """Delete a line and its items if the line belongs to the order.

        Returns:
            True if a line was deleted, False if it was not part of the order
        """
        if self.get_order_category(order_category_id, order_id) is None:
            return False

        self.session.execute(
            delete(OrderItem).where(OrderItem.order_category_id == order_category_id)
        )
        self.session.execute(
            delete(OrderCategory).where(
                OrderCategory.id == order_category_id, OrderCategory.order_id == order_id
            )
        )
        return True

    def delete_order(self, order_id: int) -> None:
        """Delete an order with all of its items and lines."""
        self.session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        self.session.execute(delete(OrderCategory).where(OrderCategory.order_id == order_id))
        self.session.execute(delete(Order).where(Order.id == order_id))

    def sum_line_totals(self, order_id: int) -> Decimal:
        """Sum ``total_price`` over an order's lines."""
        total = self.session.scalar(
            select(func.coalesce(func.sum(OrderCategory.total_price), 0)).where(
                OrderCategory.order_id == order_id
            )
        )
        return Decimal(str(total)).quantize(CENTS)

    # --- Submission and status ------------------------------------------------------------------

    def confirm_order(
        self,
        order_id: int,
        total_amount: Decimal,
        delivery_type: str,
        delivery_address: str | None,
        phone_number: str,
        email: str,
        requested_date: date,
        requested_time: datetime,
        special_instructions: str | None,
    ) -> Order | None:
        """Move a cart order to ``pending`` with its delivery and contact details.

        Returns:
            The updated order, or None if it is no longer a cart
        """
        now = datetime.now(UTC)
        result = self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.order_status == OrderStatus.CART.value)
            .values(
                total_amount=total_amount,
                order_status=OrderStatus.PENDING.value,
                delivery_type=delivery_type,
                delivery_address=delivery_address,
                guest_phone=phone_number,
                guest_email=email,
                requested_date=requested_date,
                requested_time=requested_time,
                special_instructions=special_instructions,
                confirmed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            return None
        return self.session.get(Order, order_id)

    def update_status(self, order_id: int, status: OrderStatus) -> bool:
        """Set an order's status, stamping ``completed_at`` on completion."""
        now = datetime.now(UTC)
        values: dict = {"order_status": status.value, "updated_at": now}
        if status == OrderStatus.COMPLETED:
            values["completed_at"] = now
        result = self.session.execute(update(Order).where(Order.id == order_id).values(**values))
        return result.rowcount > 0

    # --- History --------------------------------------------------------------------------------

    def list_orders_for_user(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> list[tuple[Order, int]]:
        """List a user's submitted orders, newest first.

        Returns:
            Pairs of (order, number of category lines)
        """
        line_count = (
            select(func.count(OrderCategory.id))
            .where(OrderCategory.order_id == Order.id)
            .correlate(Order)
            .scalar_subquery()
        )
        stmt = (
            select(Order, line_count)
            .where(Order.app_user_id == user_id, Order.order_status != OrderStatus.CART.value)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [(order, int(count or 0)) for order, count in self.session.execute(stmt)]

    def get_order_for_user(self, order_id: int, user_id: int) -> Order | None:
        """Get an order only if it belongs to the given user."""
        stmt = select(Order).where(Order.id == order_id, Order.app_user_id == user_id)
        return self.session.scalar(stmt)
