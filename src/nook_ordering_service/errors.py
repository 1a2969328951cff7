"""Domain errors and return codes.

Every JSON response carries a ``return_code``. Services raise ``OrderingError``
for expected failures; the API layer converts it into the response envelope.
"""

from enum import Enum
from typing import Any


class ReturnCode(str, Enum):
    """Return codes reported in the ``return_code`` field of every response."""

    SUCCESS = "SUCCESS"
    SERVER_ERROR = "SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Identity
    USER_EXISTS = "USER_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    NO_TOKEN = "NO_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_MISMATCH = "USER_MISMATCH"

    # Action dispatch
    MISSING_ACTION = "MISSING_ACTION"
    INVALID_ACTION = "INVALID_ACTION"

    # Catalog
    MISSING_CATEGORY_ID = "MISSING_CATEGORY_ID"
    INVALID_CATEGORY_ID = "INVALID_CATEGORY_ID"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    MISSING_CATEGORY_TYPE = "MISSING_CATEGORY_TYPE"
    MISSING_BUFFET_TYPE = "MISSING_BUFFET_TYPE"
    INVALID_BUFFET_TYPE = "INVALID_BUFFET_TYPE"

    # Cart and orders
    MISSING_USER_SESSION = "MISSING_USER_SESSION"
    MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
    CART_EMPTY = "CART_EMPTY"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"

    # Routing
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Store info and app versions
    INFO_NOT_FOUND = "INFO_NOT_FOUND"
    MISSING_APP_VERSION = "MISSING_APP_VERSION"
    APP_UPDATE_REQUIRED = "APP_UPDATE_REQUIRED"


DEFAULT_STATUS_CODES: dict[ReturnCode, int] = {
    ReturnCode.SERVER_ERROR: 500,
    ReturnCode.INVALID_CREDENTIALS: 401,
    ReturnCode.EMAIL_NOT_VERIFIED: 401,
    ReturnCode.NO_TOKEN: 401,
    ReturnCode.TOKEN_EXPIRED: 401,
    ReturnCode.USER_MISMATCH: 403,
    ReturnCode.METHOD_NOT_ALLOWED: 405,
    ReturnCode.USER_NOT_FOUND: 404,
    ReturnCode.CATEGORY_NOT_FOUND: 404,
    ReturnCode.CART_EMPTY: 404,
    ReturnCode.ITEM_NOT_FOUND: 404,
    ReturnCode.ORDER_NOT_FOUND: 404,
    ReturnCode.INFO_NOT_FOUND: 404,
    ReturnCode.APP_UPDATE_REQUIRED: 426,
}


class OrderingError(Exception):
    """Expected failure of an API operation.

    Attributes:
        return_code: Code reported to the client
        message: Human readable message reported to the client
        status_code: HTTP status for the response
        extra: Additional payload fields merged into the envelope
    """

    def __init__(
        self,
        return_code: ReturnCode,
        message: str,
        status_code: int | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(message)
        self.return_code = return_code
        self.message = message
        self.status_code = status_code or DEFAULT_STATUS_CODES.get(return_code, 400)
        self.extra = extra

    def to_envelope(self) -> dict[str, Any]:
        """Render the error as a response envelope."""
        return {"return_code": self.return_code.value, "message": self.message, **self.extra}
