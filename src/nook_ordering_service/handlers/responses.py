"""JSON response envelopes.

Every JSON body has the shape ``{"return_code": ..., "message": ..., **payload}``.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from nook_ordering_service.errors import OrderingError, ReturnCode

INTERNAL_ERROR_MESSAGE = "Internal server error"


def success(message: str | None = None, status_code: int = 200, **payload: Any) -> JSONResponse:
    """Build a ``SUCCESS`` envelope.

    Args:
        message: Message for the client; omitted from the body when None
        status_code: HTTP status code
        **payload: Additional fields of the body

    Returns:
        JSONResponse with the envelope
    """
    body: dict[str, Any] = {"return_code": ReturnCode.SUCCESS.value}
    if message is not None:
        body["message"] = message
    body.update(payload)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def failure(error: OrderingError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_envelope()))


def server_error(message: str = INTERNAL_ERROR_MESSAGE) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"return_code": ReturnCode.SERVER_ERROR.value, "message": message},
    )
