"""Main application entry point for the ordering API.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os

from fastapi import FastAPI

from nook_ordering_service.auth.password_hasher import PasswordHasher
from nook_ordering_service.auth.session_tokens import SessionTokenManager
from nook_ordering_service.handlers.api_handler import create_app
from nook_ordering_service.observability import configure_logging, setup_observability
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.services.cart_service import CartService
from nook_ordering_service.services.catalog_service import CatalogService
from nook_ordering_service.services.email_service import EmailService
from nook_ordering_service.services.identity_service import IdentityService
from nook_ordering_service.services.order_service import OrderService
from nook_ordering_service.services.store_info_service import StoreInfoService

logger = logging.getLogger(__name__)


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def create_database() -> Database:
    """Create the database handle from ``DATABASE_URL``.

    Returns:
        Database bound to the configured engine
    """
    database_url = os.getenv("DATABASE_URL", "sqlite:///./nook.db")
    database = Database.from_url(database_url, echo=env_flag("DB_ECHO"))

    if env_flag("DB_CREATE_TABLES"):
        database.create_all()

    logger.info(f"Database configured ({database.engine.url.get_backend_name()})")
    return database


def create_email_service() -> EmailService:
    api_key = os.getenv("RESEND_API_KEY")
    if not api_key:
        logger.warning("RESEND_API_KEY not configured - outbound email is disabled")

    return EmailService(
        api_key=api_key,
        from_address=os.getenv("EMAIL_FROM", "orders@example.com"),
        business_name=os.getenv("EMAIL_NAME", "The Nook"),
        public_base_url=os.getenv("EMAIL_VERIFICATION_URL", "http://localhost:3000"),
        business_email=os.getenv("BUSINESS_NOTIFICATION_EMAIL"),
    )


def create_token_manager() -> SessionTokenManager:
    """Create the session token manager.

    Raises:
        ValueError: If ``JWT_SECRET`` is not set
    """
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET must be set in environment")
    return SessionTokenManager(secret=secret, expires_in=os.getenv("JWT_EXPIRES_IN", "24h"))


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    Returns:
        Configured FastAPI application instance
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Initializing ordering API...")

    database = create_database()
    email_service = create_email_service()
    token_manager = create_token_manager()
    password_hasher = PasswordHasher(rounds=int(os.getenv("BCRYPT_ROUNDS", "12")))

    catalog_service = CatalogService(database=database)
    identity_service = IdentityService(
        database=database,
        password_hasher=password_hasher,
        token_manager=token_manager,
        email_service=email_service,
    )
    cart_service = CartService(database=database, catalog_service=catalog_service)
    order_service = OrderService(database=database, email_service=email_service)
    store_info_service = StoreInfoService(database=database)

    logger.info("Services initialized")

    app = create_app(
        database=database,
        identity_service=identity_service,
        catalog_service=catalog_service,
        cart_service=cart_service,
        order_service=order_service,
        store_info_service=store_info_service,
        token_manager=token_manager,
        required_app_version=os.getenv("REQUIRED_APP_VERSION", "1.0.0"),
        enforce_app_version=env_flag("ENFORCE_APP_VERSION"),
        business_name=os.getenv("EMAIL_NAME", "The Nook"),
    )

    setup_observability(app=app, engine=database.engine)

    logger.info("Ordering API initialized successfully")
    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "3000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
