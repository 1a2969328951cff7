"""Order submission and order history.

Submission is the only forward transition of an order, ``cart`` -> ``pending``.
The total is always recomputed from the stored lines, never taken from the
client.
"""

import asyncio
import logging
from datetime import date, datetime, time

from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import (
    CartLine,
    OrderConfirmation,
    OrderDetail,
    OrderSummary,
    SessionClaims,
    SubmitOrderRequest,
    format_order_number,
)
from nook_ordering_service.models.db_models import DeliveryType, Order
from nook_ordering_service.observability.decorators import traced
from nook_ordering_service.observability.metrics import record_order_submitted
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.repositories.order_repository import OrderRepository
from nook_ordering_service.services.cart_service import find_cart, load_order_lines, resolve_owner
from nook_ordering_service.services.email_service import EmailService
from nook_ordering_service.services.email_templates import OrderEmailData

logger = logging.getLogger(__name__)

BASE_PREPARATION_MINUTES = 30
MINUTES_PER_PORTION = 5
MAX_PREPARATION_MINUTES = 90


def estimate_preparation_time(lines: list[CartLine]) -> str:
    """Estimate preparation time from the number of portions ordered.

    Returns:
        Estimate such as "45 minutes"; 30 minutes plus 5 per portion, at most 90
    """
    portions = sum(line.quantity for line in lines)
    minutes = min(BASE_PREPARATION_MINUTES + portions * MINUTES_PER_PORTION, MAX_PREPARATION_MINUTES)
    return f"{minutes} minutes"


def parse_requested_slot(requested_date: str, requested_time: str) -> tuple[date, datetime]:
    """Parse the requested date ("YYYY-MM-DD") and time ("HH:MM[:SS]").

    Returns:
        The date and the combined date and time

    Raises:
        OrderingError: ``VALIDATION_ERROR`` if either value is malformed
    """
    try:
        day = date.fromisoformat(requested_date.strip())
        slot = time.fromisoformat(requested_time.strip())
    except ValueError:
        raise OrderingError(
            ReturnCode.VALIDATION_ERROR,
            "requested_date must be YYYY-MM-DD and requested_time must be HH:MM",
        )
    return day, datetime.combine(day, slot)


def _summary_fields(order: Order, item_count: int) -> dict:
    return {
        "id": order.id,
        "order_number": format_order_number(order.id),
        "order_status": order.order_status,
        "total_amount": float(order.total_amount),
        "delivery_type": order.delivery_type,
        "requested_date": order.requested_date,
        "requested_time": order.requested_time,
        "created_at": order.created_at,
        "confirmed_at": order.confirmed_at,
        "item_count": item_count,
    }


class OrderService:
    """Converts carts into orders and reads a user's order history."""

    def __init__(self, database: Database, email_service: EmailService) -> None:
        """Initialize the OrderService.

        Args:
            database: Database handle
            email_service: Client used for confirmation and notification email
        """
        self.database = database
        self.email_service = email_service

    @traced("order.submit")
    async def submit(
        self, request: SubmitOrderRequest, claims: SessionClaims | None = None
    ) -> OrderConfirmation:
        """Submit the owner's cart as a pending order.

        The order is committed before any email is sent; email failures are
        logged and never reach the caller.

        Args:
            request: Submission details
            claims: Claims of the caller's session token, if one was sent

        Returns:
            OrderConfirmation with the recomputed total and order number

        Raises:
            OrderingError: ``MISSING_USER_SESSION``, ``USER_MISMATCH``,
                ``MISSING_REQUIRED_FIELDS``, ``VALIDATION_ERROR`` or ``CART_EMPTY``
        """
        owner = resolve_owner(request.user_id, request.session_id, claims)

        if not (
            request.delivery_type
            and request.phone_number
            and request.email
            and request.requested_date
            and request.requested_time
        ):
            raise OrderingError(
                ReturnCode.MISSING_REQUIRED_FIELDS,
                "delivery_type, phone_number, email, requested_date, and requested_time are required",
            )
        try:
            delivery_type = DeliveryType(request.delivery_type)
        except ValueError:
            raise OrderingError(
                ReturnCode.VALIDATION_ERROR, "delivery_type must be 'delivery' or 'collection'"
            )
        if delivery_type == DeliveryType.DELIVERY and not request.delivery_address:
            raise OrderingError(
                ReturnCode.MISSING_REQUIRED_FIELDS, "delivery_address is required for delivery orders"
            )
        requested_date, requested_time = parse_requested_slot(
            request.requested_date, request.requested_time
        )

        with self.database.transaction() as session:
            orders = OrderRepository(session)
            cart = find_cart(orders, owner)
            if cart is None:
                raise OrderingError(ReturnCode.CART_EMPTY, "No cart found for this user")
            lines = load_order_lines(session, cart.id)
            if not lines:
                raise OrderingError(ReturnCode.CART_EMPTY, "Cart is empty")

            total_amount = orders.sum_line_totals(cart.id)
            confirmed = orders.confirm_order(
                order_id=cart.id,
                total_amount=total_amount,
                delivery_type=delivery_type.value,
                delivery_address=request.delivery_address,
                phone_number=request.phone_number,
                email=request.email,
                requested_date=requested_date,
                requested_time=requested_time,
                special_instructions=request.special_instructions,
            )
            if confirmed is None:
                raise OrderingError(ReturnCode.CART_EMPTY, "No cart found for this user")

        confirmation = OrderConfirmation(
            order_id=confirmed.id,
            order_number=format_order_number(confirmed.id),
            total_amount=float(total_amount),
            estimated_time=estimate_preparation_time(lines),
            delivery_type=delivery_type.value,
            delivery_address=request.delivery_address,
            phone_number=request.phone_number,
            email=request.email,
            requested_date=requested_date,
            requested_time=requested_time,
            special_instructions=request.special_instructions,
            lines=lines,
        )
        logger.info(
            f"Order {confirmation.order_number} submitted by {owner.describe()} "
            f"for {confirmation.total_amount:.2f}"
        )
        record_order_submitted(delivery_type.value, confirmation.total_amount)

        await self._send_order_emails(confirmation, request)
        return confirmation

    async def _send_order_emails(
        self, confirmation: OrderConfirmation, request: SubmitOrderRequest
    ) -> None:
        email_data = OrderEmailData(
            order_number=confirmation.order_number,
            total_amount=confirmation.total_amount,
            delivery_type=confirmation.delivery_type,
            requested_date=request.requested_date or "",
            requested_time=request.requested_time or "",
            estimated_time=confirmation.estimated_time,
            phone_number=confirmation.phone_number,
            email=confirmation.email,
            delivery_address=confirmation.delivery_address,
            special_instructions=confirmation.special_instructions,
            lines=confirmation.lines,
        )
        results = await asyncio.gather(
            self.email_service.send_order_confirmation_email(email_data),
            self.email_service.send_business_notification_email(email_data),
            return_exceptions=True,
        )
        for kind, result in zip(("confirmation", "business notification"), results):
            if isinstance(result, BaseException):
                logger.error(f"Error sending {kind} email for {confirmation.order_number}: {result}")
            elif not result.success:
                logger.warning(
                    f"Failed to send {kind} email for {confirmation.order_number}: {result.error}"
                )

    @traced("order.history")
    async def get_history(
        self,
        user_id: int | None,
        limit: int = 20,
        offset: int = 0,
        claims: SessionClaims | None = None,
    ) -> list[OrderSummary]:
        """List a user's submitted orders, newest first.

        Raises:
            OrderingError: ``MISSING_REQUIRED_FIELDS`` or ``USER_MISMATCH``
        """
        if not user_id:
            raise OrderingError(ReturnCode.MISSING_REQUIRED_FIELDS, "user_id is required")
        resolve_owner(user_id, None, claims)

        with self.database.transaction() as session:
            rows = OrderRepository(session).list_orders_for_user(user_id, limit=limit, offset=offset)
            return [OrderSummary(**_summary_fields(order, count)) for order, count in rows]

    @traced("order.details")
    async def get_details(
        self,
        user_id: int | None,
        order_id: int | None,
        claims: SessionClaims | None = None,
    ) -> OrderDetail:
        """Get one of a user's orders with all of its lines.

        Raises:
            OrderingError: ``MISSING_REQUIRED_FIELDS``, ``USER_MISMATCH`` or ``ORDER_NOT_FOUND``
        """
        if not user_id or not order_id:
            raise OrderingError(ReturnCode.MISSING_REQUIRED_FIELDS, "user_id and order_id are required")
        resolve_owner(user_id, None, claims)

        with self.database.transaction() as session:
            order = OrderRepository(session).get_order_for_user(order_id, user_id)
            if order is None:
                raise OrderingError(ReturnCode.ORDER_NOT_FOUND, "Order not found")
            lines = load_order_lines(session, order.id)
            return OrderDetail(
                **_summary_fields(order, len(lines)),
                delivery_address=order.delivery_address,
                guest_phone=order.guest_phone,
                guest_email=order.guest_email,
                special_instructions=order.special_instructions,
                completed_at=order.completed_at,
                categories=lines,
            )
