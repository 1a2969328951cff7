"""FastAPI dependencies shared by the routers."""

from typing import Annotated

from fastapi import Header, Request

from nook_ordering_service.auth.api_dependencies import get_optional_session, get_session_from_header
from nook_ordering_service.models.api_models import SessionClaims


def require_session(
    request: Request, authorization: Annotated[str | None, Header()] = None
) -> SessionClaims:
    """Dependency for endpoints that need a logged-in user."""
    return get_session_from_header(
        authorization=authorization, token_manager=request.app.state.token_manager
    )


def optional_session(
    request: Request, authorization: Annotated[str | None, Header()] = None
) -> SessionClaims | None:
    """Dependency for endpoints open to guests that cross-check a session when one is sent."""
    return get_optional_session(authorization, request.app.state.token_manager)
