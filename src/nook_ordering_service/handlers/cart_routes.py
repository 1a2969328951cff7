"""Cart endpoint: ``/api/cart``."""

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from nook_ordering_service.handlers.dependencies import optional_session
from nook_ordering_service.handlers.responses import success
from nook_ordering_service.models.api_models import CartRequest, SessionClaims


def register_cart_routes(app: FastAPI) -> None:
    """Register the cart endpoint on the application."""

    @app.post("/api/cart", tags=["Cart"])
    async def cart(
        body: CartRequest, claims: SessionClaims | None = Depends(optional_session)
    ) -> JSONResponse:
        """Run one cart action (add, get, delete, clear or validation) for the body's owner."""
        payload = await app.state.cart_service.dispatch(body, claims)
        return success(**payload)
