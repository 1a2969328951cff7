"""FastAPI application for the ordering API."""

import logging
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nook_ordering_service.auth.session_tokens import SessionTokenManager
from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.handlers.auth_routes import register_auth_routes
from nook_ordering_service.handlers.cart_routes import register_cart_routes
from nook_ordering_service.handlers.catalog_routes import register_catalog_routes
from nook_ordering_service.handlers.order_routes import register_order_routes
from nook_ordering_service.handlers.responses import failure, server_error
from nook_ordering_service.handlers.system_routes import API_VERSION, register_system_routes
from nook_ordering_service.handlers.version_gate import create_version_gate
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.services.cart_service import CartService
from nook_ordering_service.services.catalog_service import CatalogService
from nook_ordering_service.services.identity_service import IdentityService
from nook_ordering_service.services.order_service import OrderService
from nook_ordering_service.services.store_info_service import StoreInfoService

logger = logging.getLogger(__name__)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(OrderingError)
    async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return failure(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = sorted({".".join(str(p) for p in error["loc"][1:]) for error in exc.errors()})
        logger.info(f"Rejected malformed request to {request.url.path}: {fields}")
        return JSONResponse(
            status_code=400,
            content={
                "return_code": ReturnCode.VALIDATION_ERROR.value,
                "message": "Invalid request body",
                "fields": [field for field in fields if field],
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Route not found",
                    "path": request.url.path,
                    "method": request.method,
                },
            )
        if exc.status_code == 405:
            return_code = ReturnCode.METHOD_NOT_ALLOWED
        elif exc.status_code >= 500:
            return_code = ReturnCode.SERVER_ERROR
        else:
            return_code = ReturnCode.VALIDATION_ERROR
        return JSONResponse(
            status_code=exc.status_code,
            content={"return_code": return_code.value, "message": str(exc.detail)},
            headers=exc.headers,
        )

    @app.middleware("http")
    async def catch_unhandled_errors(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method} {request.url.path}: {e}")
            return server_error()


def create_app(
    database: Database,
    identity_service: IdentityService,
    catalog_service: CatalogService,
    cart_service: CartService,
    order_service: OrderService,
    store_info_service: StoreInfoService,
    token_manager: SessionTokenManager,
    required_app_version: str = "1.0.0",
    enforce_app_version: bool = False,
    business_name: str = "The Nook",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        database: Database handle, used by the health check
        identity_service: Accounts and credentials
        catalog_service: Categories and menu items
        cart_service: Cart actions
        order_service: Order submission and history
        store_info_service: Business metadata
        token_manager: Verifier of bearer session tokens
        required_app_version: Minimum supported app version
        enforce_app_version: Whether to require the ``app-version`` header on API calls
        business_name: Name shown on HTML pages and the root banner

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=f"{business_name} Ordering API",
        description="Accounts, catalog, cart and order submission for buffet orders",
        version=API_VERSION,
    )

    # Store services in app state for access in route handlers
    app.state.database = database
    app.state.identity_service = identity_service
    app.state.catalog_service = catalog_service
    app.state.cart_service = cart_service
    app.state.order_service = order_service
    app.state.store_info_service = store_info_service
    app.state.token_manager = token_manager
    app.state.required_app_version = required_app_version
    app.state.business_name = business_name

    register_system_routes(app)
    register_auth_routes(app)
    register_catalog_routes(app)
    register_cart_routes(app)
    register_order_routes(app)

    if enforce_app_version:
        app.middleware("http")(create_version_gate(required_app_version))
        logger.info(f"App version gate enabled, minimum version {required_app_version}")

    # Registered last so that it wraps every other middleware
    _install_error_handlers(app)

    return app
