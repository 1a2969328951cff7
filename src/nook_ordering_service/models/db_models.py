"""SQLAlchemy table mappings for the ordering database.

Orders move through a single forward transition, ``cart`` -> ``pending``.
An order is owned either by ``app_user_id`` or, for guests, by the session
identifier stored in ``guest_email`` while the order is still a cart.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    CART = "cart"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeliveryType(str, Enum):
    """Fulfilment options for a submitted order."""

    DELIVERY = "delivery"
    COLLECTION = "collection"


# Placeholder stored on cart orders until the customer submits delivery details
CART_DELIVERY_PLACEHOLDER = "pending"


class AppUser(Base):
    """Registered or anonymous customer."""

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Single slot shared by email verification and password reset tokens
    auth_token: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    auth_token_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_active_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )


class ProductCategory(Base):
    """Buffet or share-box tier offered for ordering."""

    __tablename__ = "product_category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    minimum_quantity: Mapped[int | None] = mapped_column(Integer, default=1, nullable=True)

    menu_links: Mapped[list["CategoryMenuItem"]] = relationship(back_populates="category")


class MenuItem(Base):
    """Selectable food item."""

    __tablename__ = "menu_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    item_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_vegetarian: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class CategoryMenuItem(Base):
    """Join between categories and the menu items they offer."""

    __tablename__ = "category_menu_item"

    category_id: Mapped[int] = mapped_column(
        ForeignKey("product_category.id"), primary_key=True
    )
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_item.id"), primary_key=True)
    is_default_included: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped[ProductCategory] = relationship(back_populates="menu_links")
    menu_item: Mapped[MenuItem] = relationship()


class Order(Base):
    """Customer order; a cart until submitted."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("app_user.id"), nullable=True, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    order_status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.CART.value, nullable=False, index=True
    )
    delivery_type: Mapped[str] = mapped_column(
        String(20), default=CART_DELIVERY_PLACEHOLDER, nullable=False
    )
    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    guest_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Holds the guest session identifier while the order is a cart
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    requested_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    requested_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    categories: Mapped[list["OrderCategory"]] = relationship(
        back_populates="order", order_by="OrderCategory.id"
    )


class OrderCategory(Base):
    """Priced buffet line within an order."""

    __tablename__ = "order_category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("product_category.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    department_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deluxe_format: Mapped[str | None] = mapped_column(String(50), nullable=True)

    order: Mapped[Order] = relationship(back_populates="categories")
    category: Mapped[ProductCategory] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order_category", order_by="OrderItem.id"
    )


class OrderItem(Base):
    """Menu item selected for one order line."""

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    order_category_id: Mapped[int] = mapped_column(
        ForeignKey("order_category.id"), nullable=False, index=True
    )
    # Weak reference: fallback catalog items have no menu_item row
    menu_item_id: Mapped[int] = mapped_column(Integer, nullable=False)

    order_category: Mapped[OrderCategory] = relationship(back_populates="items")


class StoreInfo(Base):
    """Key/value business metadata (opening hours, address, contact)."""

    __tablename__ = "store_info"

    info_key: Mapped[str] = mapped_column(String(100), primary_key=True)
    info_value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
