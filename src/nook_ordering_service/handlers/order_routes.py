"""Order endpoints under ``/api/orders``."""

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from nook_ordering_service.handlers.dependencies import optional_session
from nook_ordering_service.handlers.responses import success
from nook_ordering_service.models.api_models import (
    OrderDetailsRequest,
    OrderHistoryRequest,
    SessionClaims,
    SubmitOrderRequest,
)


def register_order_routes(app: FastAPI) -> None:
    """Register the order endpoints on the application."""

    @app.post("/api/orders/submit", tags=["Orders"])
    async def submit_order(
        body: SubmitOrderRequest, claims: SessionClaims | None = Depends(optional_session)
    ) -> JSONResponse:
        """Convert the owner's cart into a pending order.

        ``email_sent`` is always true; email delivery problems are only logged.
        """
        confirmation = await app.state.order_service.submit(body, claims)
        return success(
            "Order submitted successfully",
            order_id=confirmation.order_id,
            order_number=confirmation.order_number,
            total_amount=confirmation.total_amount,
            estimated_time=confirmation.estimated_time,
            email_sent=True,
        )

    @app.post("/api/orders/history", tags=["Orders"])
    async def order_history(
        body: OrderHistoryRequest, claims: SessionClaims | None = Depends(optional_session)
    ) -> JSONResponse:
        orders = await app.state.order_service.get_history(
            body.user_id, limit=body.limit, offset=body.offset, claims=claims
        )
        return success(
            "Order history retrieved successfully",
            orders=[order.model_dump() for order in orders],
            limit=body.limit,
            offset=body.offset,
        )

    @app.post("/api/orders/details", tags=["Orders"])
    async def order_details(
        body: OrderDetailsRequest, claims: SessionClaims | None = Depends(optional_session)
    ) -> JSONResponse:
        order = await app.state.order_service.get_details(body.user_id, body.order_id, claims=claims)
        return success("Order details retrieved successfully", order=order.model_dump())
