"""FastAPI dependencies for session authentication.

Provides functions that extract and verify the bearer session token from the
Authorization header.
"""

from typing import Annotated

from fastapi import Header

from nook_ordering_service.auth.session_tokens import SessionTokenManager
from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import SessionClaims


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token part of a ``Bearer <token>`` header value."""
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def get_session_from_header(
    authorization: Annotated[str | None, Header()] = None,
    token_manager: SessionTokenManager | None = None,
) -> SessionClaims:
    """Dependency body that requires a valid session token.

    Args:
        authorization: Value of the Authorization header (injected by FastAPI)
        token_manager: Manager used to verify the token

    Returns:
        SessionClaims: Claims of the verified token

    Raises:
        OrderingError: ``NO_TOKEN``, ``TOKEN_EXPIRED`` or ``INVALID_TOKEN`` (401)
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise OrderingError(ReturnCode.NO_TOKEN, "Access token required")

    if token_manager is None:
        raise OrderingError(ReturnCode.INVALID_TOKEN, "Invalid token", status_code=401)

    return token_manager.decode(token)


def get_optional_session(
    authorization: str | None,
    token_manager: SessionTokenManager | None,
) -> SessionClaims | None:
    """Return the caller's session claims if a valid token was sent, None otherwise."""
    if not extract_bearer_token(authorization) or token_manager is None:
        return None
    try:
        return get_session_from_header(authorization=authorization, token_manager=token_manager)
    except OrderingError:
        return None
