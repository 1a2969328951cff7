"""Request and response models for the JSON API.

Request fields are optional at the schema level so that missing values are
reported with the API's own return codes rather than a generic 422.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ORDER_NUMBER_PREFIX = "NK"


def format_order_number(order_id: int) -> str:
    """Derive the customer-facing order number from an order id.

    Args:
        order_id: Numeric order id

    Returns:
        Prefixed, zero-padded order number (e.g. 123 -> "NK000123")
    """
    return f"{ORDER_NUMBER_PREFIX}{order_id:06d}"


# --- Auth ---------------------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    display_name: str | None = None
    phone: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class EmailRequest(BaseModel):
    """Body of resend-verification and forgot-password."""

    email: str | None = None


class ResetPasswordRequest(BaseModel):
    token: str | None = None
    new_password: str | None = None


class ProfileUpdateRequest(BaseModel):
    display_name: str | None = None


class PublicUser(BaseModel):
    """User record without credential or token fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    phone: str | None = None
    display_name: str | None = None
    is_anonymous: bool
    email_verified: bool
    created_at: datetime | None = None
    last_active_at: datetime | None = None


class SessionClaims(BaseModel):
    """Claims carried by a signed session token."""

    user_id: int
    email: str
    display_name: str | None = None
    is_anonymous: bool = False
    email_verified: bool = False


# --- Catalog ------------------------------------------------------------------------------------


class CategoryAction(str, Enum):
    GET_ALL = "get_all"
    GET_BY_ID = "get_by_id"
    GET_BY_TYPE = "get_by_type"


class CategoryRequest(BaseModel):
    action: str | None = None
    category_id: Any = None
    category_type: str | None = None


class BuffetItemsAction(str, Enum):
    GET_BY_BUFFET_TYPE = "get_by_buffet_type"


class BuffetType(str, Enum):
    """Buffet tiers; each tier includes the items of the tiers before it."""

    CLASSIC = "Classic"
    ENHANCED = "Enhanced"
    DELUXE = "Deluxe"


class BuffetItemsRequest(BaseModel):
    action: str | None = None
    buffet_type: str | None = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    is_active: bool = True
    minimum_quantity: int | None = None


class CategoryMinimum(BaseModel):
    id: int
    name: str
    minimum_quantity: int


class MenuItemOut(BaseModel):
    """Menu item as offered for one category."""

    id: int
    name: str
    description: str | None = None
    item_type: str | None = None
    is_vegetarian: bool = False
    is_default: bool = True


# --- Cart and orders ----------------------------------------------------------------------------


class CartAction(str, Enum):
    ADD = "add"
    GET = "get"
    DELETE = "delete"
    CLEAR = "clear"
    VALIDATION = "validation"


class OwnerFields(BaseModel):
    """Owner identity: a numeric user id or an opaque guest session id."""

    user_id: int | None = None
    session_id: str | None = None


class CartRequest(OwnerFields):
    action: str | None = None
    category_id: int | None = None
    quantity: int | None = None
    unit_price: Decimal | None = None
    department_label: str | None = None
    notes: str | None = None
    deluxe_format: str | None = None
    included_items: list[int] | None = None
    order_category_id: int | None = None


class SubmitOrderRequest(OwnerFields):
    delivery_type: str | None = None
    delivery_address: str | None = None
    phone_number: str | None = None
    email: str | None = None
    requested_date: str | None = None
    requested_time: str | None = None
    special_instructions: str | None = None


class OrderHistoryRequest(BaseModel):
    user_id: int | None = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class OrderDetailsRequest(BaseModel):
    user_id: int | None = None
    order_id: int | None = None


class SelectedItem(BaseModel):
    menu_item_id: int
    name: str | None = None


class CartLine(BaseModel):
    """One order category line with its selected menu items."""

    id: int
    category_id: int
    category_name: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    notes: str | None = None
    department_label: str | None = None
    deluxe_format: str | None = None
    included_items: list[SelectedItem] = Field(default_factory=list)


class CartContents(BaseModel):
    cart_items: list[CartLine] = Field(default_factory=list)
    total_amount: float = 0.0


class OrderConfirmation(BaseModel):
    """Result of converting a cart into a pending order."""

    order_id: int
    order_number: str
    total_amount: float
    estimated_time: str
    delivery_type: str
    delivery_address: str | None = None
    phone_number: str
    email: str
    requested_date: date
    requested_time: datetime
    special_instructions: str | None = None
    lines: list[CartLine] = Field(default_factory=list)


class OrderSummary(BaseModel):
    id: int
    order_number: str
    order_status: str
    total_amount: float
    delivery_type: str
    requested_date: date | None = None
    requested_time: datetime | None = None
    created_at: datetime | None = None
    confirmed_at: datetime | None = None
    item_count: int


class OrderDetail(OrderSummary):
    delivery_address: str | None = None
    guest_phone: str | None = None
    guest_email: str | None = None
    special_instructions: str | None = None
    completed_at: datetime | None = None
    categories: list[CartLine] = Field(default_factory=list)


# --- System -------------------------------------------------------------------------------------


class VersionCheckRequest(BaseModel):
    app_version: str | None = None
