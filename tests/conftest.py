"""Shared pytest fixtures and configuration for all tests."""

import os

os.environ["ENVIRONMENT"] = "test"

from collections.abc import Iterator  # noqa: E402
from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from nook_ordering_service.auth.password_hasher import PasswordHasher  # noqa: E402
from nook_ordering_service.auth.session_tokens import SessionTokenManager  # noqa: E402
from nook_ordering_service.handlers.api_handler import create_app  # noqa: E402
from nook_ordering_service.models.db_models import (  # noqa: E402
    AppUser,
    CategoryMenuItem,
    MenuItem,
    ProductCategory,
    StoreInfo,
)
from nook_ordering_service.repositories.database import Database  # noqa: E402
from nook_ordering_service.services.cart_service import CartService  # noqa: E402
from nook_ordering_service.services.catalog_service import CatalogService  # noqa: E402
from nook_ordering_service.services.email_service import EmailResult, EmailService  # noqa: E402
from nook_ordering_service.services.identity_service import IdentityService  # noqa: E402
from nook_ordering_service.services.order_service import OrderService  # noqa: E402
from nook_ordering_service.services.store_info_service import StoreInfoService  # noqa: E402

TEST_JWT_SECRET = "test-secret"
TEST_PASSWORD = "correct-horse"


@pytest.fixture
def database() -> Iterator[Database]:
    """Fixture providing an empty in-memory SQLite database with all tables."""
    db = Database.from_url("sqlite://")
    db.create_all()
    yield db
    db.engine.dispose()


@pytest.fixture
def seeded_catalog(database: Database) -> dict[str, int]:
    """Fixture seeding categories, menu items and store info.

    Classic has linked menu items; Enhanced and Deluxe have none, so they
    fall back to the built-in item lists. An inactive category is included.

    Returns:
        Mapping of category name to id
    """
    with database.transaction() as session:
        classic = ProductCategory(name="Classic Buffet", description="Classic", minimum_quantity=5)
        enhanced = ProductCategory(name="Enhanced Buffet", description="Enhanced", minimum_quantity=None)
        deluxe = ProductCategory(name="Deluxe Buffet", description="Deluxe", minimum_quantity=10)
        retired = ProductCategory(name="Retired Box", is_active=False)
        session.add_all([classic, enhanced, deluxe, retired])
        session.flush()

        items = [
            MenuItem(id=101, name="Egg Sandwiches", description="Egg mayo", is_vegetarian=True),
            MenuItem(id=102, name="Ham Sandwiches", description="Honey roast ham"),
            MenuItem(id=103, name="Chocolate Cake", description="Rich sponge", is_vegetarian=True),
        ]
        session.add_all(items)
        session.flush()
        session.add_all(
            [
                CategoryMenuItem(category_id=classic.id, menu_item_id=101, is_default_included=True),
                CategoryMenuItem(category_id=classic.id, menu_item_id=102, is_default_included=True),
                CategoryMenuItem(category_id=classic.id, menu_item_id=103, is_default_included=False),
            ]
        )
        session.add_all(
            [
                StoreInfo(info_key="opening_hours", info_value="Mon-Sat 9-5", description="Hours"),
                StoreInfo(info_key="phone", info_value="01938 000000"),
            ]
        )
        return {
            "classic": classic.id,
            "enhanced": enhanced.id,
            "deluxe": deluxe.id,
            "retired": retired.id,
        }


@pytest.fixture
def mock_email_service() -> MagicMock:
    """Fixture providing an email client whose sends all succeed."""
    service = MagicMock(spec=EmailService)
    ok = EmailResult(success=True, message_id="msg_123")
    service.send_verification_email = AsyncMock(return_value=ok)
    service.send_password_reset_email = AsyncMock(return_value=ok)
    service.send_order_confirmation_email = AsyncMock(return_value=ok)
    service.send_business_notification_email = AsyncMock(return_value=ok)
    return service


@pytest.fixture
def token_manager() -> SessionTokenManager:
    return SessionTokenManager(secret=TEST_JWT_SECRET, expires_in="1h")


@pytest.fixture
def password_hasher() -> PasswordHasher:
    """Fixture providing a hasher with the minimum work factor to keep tests fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def catalog_service(database: Database) -> CatalogService:
    return CatalogService(database=database)


@pytest.fixture
def cart_service(database: Database, catalog_service: CatalogService) -> CartService:
    return CartService(database=database, catalog_service=catalog_service)


@pytest.fixture
def order_service(database: Database, mock_email_service: MagicMock) -> OrderService:
    return OrderService(database=database, email_service=mock_email_service)


@pytest.fixture
def identity_service(
    database: Database,
    password_hasher: PasswordHasher,
    token_manager: SessionTokenManager,
    mock_email_service: MagicMock,
) -> IdentityService:
    return IdentityService(
        database=database,
        password_hasher=password_hasher,
        token_manager=token_manager,
        email_service=mock_email_service,
    )


@pytest.fixture
def store_info_service(database: Database) -> StoreInfoService:
    return StoreInfoService(database=database)


@pytest.fixture
def verified_user(database: Database, password_hasher: PasswordHasher) -> AppUser:
    """Fixture providing a registered user whose email is verified."""
    with database.transaction() as session:
        user = AppUser(
            email="jo@example.com",
            display_name="Jo",
            password_hash=password_hasher.hash(TEST_PASSWORD),
            is_anonymous=False,
            email_verified=True,
        )
        session.add(user)
        session.flush()
        return user


@pytest.fixture
def app_factory(
    database: Database,
    identity_service: IdentityService,
    catalog_service: CatalogService,
    cart_service: CartService,
    order_service: OrderService,
    store_info_service: StoreInfoService,
    token_manager: SessionTokenManager,
):
    """Fixture returning a function that builds the application with real services."""

    def build(**overrides):
        options = {
            "database": database,
            "identity_service": identity_service,
            "catalog_service": catalog_service,
            "cart_service": cart_service,
            "order_service": order_service,
            "store_info_service": store_info_service,
            "token_manager": token_manager,
            "required_app_version": "1.2.0",
            "business_name": "The Nook",
        }
        options.update(overrides)
        return create_app(**options)

    return build


@pytest.fixture
def client(app_factory) -> TestClient:
    """Fixture providing a test client for the application without the version gate."""
    return TestClient(app_factory())


@pytest.fixture
def classic_line() -> dict:
    """Fixture providing the body fields of a typical cart ``add``."""
    return {
        "quantity": 10,
        "unit_price": "8.50",
        "department_label": "Accounts",
        "included_items": [101, 102],
    }


@pytest.fixture
def submit_body() -> dict:
    """Fixture providing the body fields of a valid collection order."""
    return {
        "delivery_type": "collection",
        "phone_number": "+447700900000",
        "email": "jo@example.com",
        "requested_date": "2030-08-03",
        "requested_time": "12:30",
        "special_instructions": "Ring the bell",
    }


@pytest.fixture
def price() -> Decimal:
    return Decimal("8.50")
