"""Account endpoints under ``/api/auth``."""

import logging

from fastapi import Depends, FastAPI
from fastapi.responses import HTMLResponse, JSONResponse

from nook_ordering_service.handlers import html_pages
from nook_ordering_service.handlers.dependencies import require_session
from nook_ordering_service.handlers.responses import success
from nook_ordering_service.models.api_models import (
    EmailRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionClaims,
)
from nook_ordering_service.services.identity_service import TokenCheck

logger = logging.getLogger(__name__)


def register_auth_routes(app: FastAPI) -> None:
    """Register the ``/api/auth`` endpoints on the application.

    Args:
        app: Application whose state holds ``identity_service`` and ``business_name``
    """

    @app.post("/api/auth/register", tags=["Auth"])
    async def register(body: RegisterRequest) -> JSONResponse:
        """Create an account and send its verification email."""
        user, email_sent = await app.state.identity_service.register(
            email=body.email,
            password=body.password,
            display_name=body.display_name,
            phone=body.phone,
        )
        return success(
            "User registered successfully. Please check your email to verify your account.",
            status_code=201,
            user=user.model_dump(),
            email_sent=email_sent,
        )

    @app.post("/api/auth/login", tags=["Auth"])
    async def login(body: LoginRequest) -> JSONResponse:
        token, user = await app.state.identity_service.login(body.email, body.password)
        return success("Login successful", token=token, user=user.model_dump())

    @app.get("/api/auth/verify-email", response_class=HTMLResponse, tags=["Auth"])
    async def verify_email(token: str | None = None) -> HTMLResponse:
        """Verify an email address from the link in the verification email.

        Always answers with an HTML page, including on errors.
        """
        business_name = app.state.business_name
        try:
            outcome = await app.state.identity_service.verify_email(token)
        except Exception as e:
            logger.exception(f"Email verification failed: {e}")
            return HTMLResponse(html_pages.verification_error_page(business_name), status_code=500)

        if outcome == TokenCheck.INVALID:
            return HTMLResponse(html_pages.verification_invalid_page(business_name), status_code=400)
        if outcome == TokenCheck.EXPIRED:
            return HTMLResponse(html_pages.verification_expired_page(business_name), status_code=400)
        return HTMLResponse(html_pages.verification_success_page(business_name))

    @app.post("/api/auth/resend-verification", tags=["Auth"])
    async def resend_verification(body: EmailRequest) -> JSONResponse:
        message = await app.state.identity_service.resend_verification(body.email)
        return success(message)

    @app.post("/api/auth/forgot-password", tags=["Auth"])
    async def forgot_password(body: EmailRequest) -> JSONResponse:
        message = await app.state.identity_service.forgot_password(body.email)
        return success(message)

    @app.get("/api/auth/reset-password", response_class=HTMLResponse, tags=["Auth"])
    async def reset_password_form(token: str | None = None) -> HTMLResponse:
        """Serve the password reset form for the link in the reset email."""
        business_name = app.state.business_name
        try:
            outcome = await app.state.identity_service.check_reset_token(token)
        except Exception as e:
            logger.exception(f"Loading password reset form failed: {e}")
            return HTMLResponse(html_pages.reset_error_page(business_name), status_code=500)

        if outcome == TokenCheck.INVALID:
            return HTMLResponse(html_pages.reset_invalid_page(business_name), status_code=400)
        if outcome == TokenCheck.EXPIRED:
            return HTMLResponse(html_pages.reset_expired_page(business_name), status_code=400)
        return HTMLResponse(html_pages.reset_form_page(business_name, token or ""))

    @app.post("/api/auth/reset-password", tags=["Auth"])
    async def reset_password(body: ResetPasswordRequest) -> JSONResponse:
        await app.state.identity_service.reset_password(body.token, body.new_password)
        return success("Password reset successfully. You can now log in with your new password.")

    @app.get("/api/auth/profile", tags=["Auth"])
    async def get_profile(claims: SessionClaims = Depends(require_session)) -> JSONResponse:
        user = await app.state.identity_service.get_profile(claims)
        return success(user=user.model_dump())

    @app.put("/api/auth/profile", tags=["Auth"])
    async def update_profile(
        body: ProfileUpdateRequest, claims: SessionClaims = Depends(require_session)
    ) -> JSONResponse:
        await app.state.identity_service.update_profile(claims, body.display_name)
        return success("Display name updated successfully")
