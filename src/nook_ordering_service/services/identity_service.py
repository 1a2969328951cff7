"""Registration, login, email verification and password reset."""

import logging
from enum import Enum

from sqlalchemy.exc import IntegrityError

from nook_ordering_service.auth.password_hasher import PasswordHasher
from nook_ordering_service.auth.session_tokens import SessionTokenManager
from nook_ordering_service.auth.token_utils import (
    RESET_TOKEN_TTL_HOURS,
    VERIFY_TOKEN_TTL_HOURS,
    TokenPurpose,
    generate_token,
    get_token_expiry,
    is_valid_token_format,
)
from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import PublicUser, SessionClaims
from nook_ordering_service.observability.decorators import traced
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.repositories.user_repository import UserRepository
from nook_ordering_service.services.email_service import EmailService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

RESEND_VERIFICATION_MESSAGE = (
    "If this email is registered and not yet verified, a verification email has been sent."
)
FORGOT_PASSWORD_MESSAGE = "If this email is registered, a password reset link has been sent."
USER_EXISTS_MESSAGE = "User with this email already exists"


class TokenCheck(str, Enum):
    """Outcome of checking a single-use token from an emailed link."""

    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


def _require_password_length(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise OrderingError(
            ReturnCode.VALIDATION_ERROR,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )


class IdentityService:
    """User accounts and their credentials.

    Verification and reset tokens share the user's single token slot; issuing
    a new token replaces the previous one.
    """

    def __init__(
        self,
        database: Database,
        password_hasher: PasswordHasher,
        token_manager: SessionTokenManager,
        email_service: EmailService,
    ) -> None:
        """Initialize the IdentityService.

        Args:
            database: Database handle
            password_hasher: Hasher for stored passwords
            token_manager: Issuer of session tokens
            email_service: Client for verification and reset email
        """
        self.database = database
        self.password_hasher = password_hasher
        self.token_manager = token_manager
        self.email_service = email_service

    @traced("identity.register")
    async def register(
        self,
        email: str | None,
        password: str | None,
        display_name: str | None,
        phone: str | None = None,
    ) -> tuple[PublicUser, bool]:
        """Create an unverified account and email it a verification link.

        Returns:
            The new user and whether the verification email was sent

        Raises:
            OrderingError: ``VALIDATION_ERROR`` or ``USER_EXISTS``
        """
        if not email or not password or not display_name:
            raise OrderingError(
                ReturnCode.VALIDATION_ERROR, "Email, password, and display name are required"
            )
        _require_password_length(password)

        password_hash = self.password_hasher.hash(password)
        token = generate_token(TokenPurpose.VERIFY)

        try:
            with self.database.transaction() as session:
                users = UserRepository(session)
                if users.find_by_email(email) is not None:
                    raise OrderingError(ReturnCode.USER_EXISTS, USER_EXISTS_MESSAGE)
                user = users.create_user(
                    email=email,
                    display_name=display_name,
                    password_hash=password_hash,
                    phone=phone or None,
                )
                users.set_auth_token(user.id, token, get_token_expiry(VERIFY_TOKEN_TTL_HOURS))
                public_user = PublicUser.model_validate(user)
        except IntegrityError:
            # A concurrent registration claimed the email between the lookup and the insert
            logger.info("Registration lost a race on an existing email")
            raise OrderingError(ReturnCode.USER_EXISTS, USER_EXISTS_MESSAGE)

        result = await self.email_service.send_verification_email(email, token)
        if not result.success:
            logger.error(f"Failed to send verification email to user {public_user.id}: {result.error}")
        return public_user, result.success

    @traced("identity.login")
    async def login(self, email: str | None, password: str | None) -> tuple[str, PublicUser]:
        """Check credentials and issue a session token.

        Returns:
            The session token and the user record

        Raises:
            OrderingError: ``VALIDATION_ERROR``, ``INVALID_CREDENTIALS`` or
                ``EMAIL_NOT_VERIFIED`` (with ``user_id`` and ``email``)
        """
        if not email or not password:
            raise OrderingError(ReturnCode.VALIDATION_ERROR, "Email and password are required")

        with self.database.transaction() as session:
            users = UserRepository(session)
            user = users.find_by_email(email)
            if user is None or not self.password_hasher.verify(password, user.password_hash):
                raise OrderingError(ReturnCode.INVALID_CREDENTIALS, "Invalid email or password")
            if not user.is_anonymous and not user.email_verified:
                raise OrderingError(
                    ReturnCode.EMAIL_NOT_VERIFIED,
                    "Email not verified. Please check your email or continue as guest.",
                    user_id=user.id,
                    email=user.email,
                )
            users.update_last_active(user.id)
            session.refresh(user)
            public_user = PublicUser.model_validate(user)

        claims = SessionClaims(
            user_id=public_user.id,
            email=public_user.email,
            display_name=public_user.display_name,
            is_anonymous=public_user.is_anonymous,
            email_verified=public_user.email_verified,
        )
        logger.info(f"User {public_user.id} logged in")
        return self.token_manager.issue(claims), public_user

    @traced("identity.verify_email")
    async def verify_email(self, token: str | None) -> TokenCheck:
        """Consume a verification token and mark the user's email verified.

        Returns:
            ``VALID`` once verified, ``INVALID`` for a malformed token and
            ``EXPIRED`` for an unknown, used or stale one
        """
        if not is_valid_token_format(token, TokenPurpose.VERIFY):
            return TokenCheck.INVALID

        with self.database.transaction() as session:
            users = UserRepository(session)
            user = users.find_by_auth_token(token)
            if user is None:
                return TokenCheck.EXPIRED
            users.mark_email_verified(user.id)
            users.clear_auth_token(user.id)
            logger.info(f"Email verified for user {user.id}")
        return TokenCheck.VALID

    @traced("identity.resend_verification")
    async def resend_verification(self, email: str | None) -> str:
        """Issue a new verification token to an unverified, registered user.

        Returns:
            The same generic message whatever the account's state
        """
        if not email:
            raise OrderingError(ReturnCode.VALIDATION_ERROR, "Email is required")

        token = generate_token(TokenPurpose.VERIFY)
        with self.database.transaction() as session:
            users = UserRepository(session)
            user = users.find_by_email(email)
            if user is None or user.email_verified or user.is_anonymous:
                return RESEND_VERIFICATION_MESSAGE
            users.set_auth_token(user.id, token, get_token_expiry(VERIFY_TOKEN_TTL_HOURS))

        result = await self.email_service.send_verification_email(email, token)
        if not result.success:
            logger.error(f"Failed to resend verification email: {result.error}")
        return RESEND_VERIFICATION_MESSAGE

    @traced("identity.forgot_password")
    async def forgot_password(self, email: str | None) -> str:
        """Issue a password reset token to a registered, non-guest user.

        Returns:
            The same generic message whatever the account's state
        """
        if not email:
            raise OrderingError(ReturnCode.VALIDATION_ERROR, "Email is required")

        token = generate_token(TokenPurpose.RESET)
        with self.database.transaction() as session:
            users = UserRepository(session)
            user = users.find_by_email(email)
            if user is None or user.is_anonymous:
                return FORGOT_PASSWORD_MESSAGE
            users.set_auth_token(user.id, token, get_token_expiry(RESET_TOKEN_TTL_HOURS))

        result = await self.email_service.send_password_reset_email(email, token)
        if not result.success:
            logger.error(f"Failed to send password reset email: {result.error}")
        return FORGOT_PASSWORD_MESSAGE

    @traced("identity.check_reset_token")
    async def check_reset_token(self, token: str | None) -> TokenCheck:
        """Check a reset token without consuming it (for the reset form)."""
        if not is_valid_token_format(token, TokenPurpose.RESET):
            return TokenCheck.INVALID
        with self.database.transaction() as session:
            if UserRepository(session).find_by_auth_token(token) is None:
                return TokenCheck.EXPIRED
        return TokenCheck.VALID

    @traced("identity.reset_password")
    async def reset_password(self, token: str | None, new_password: str | None) -> None:
        """Replace a user's password using a reset token, consuming the token.

        Raises:
            OrderingError: ``VALIDATION_ERROR`` or ``INVALID_TOKEN``
        """
        if not token or not new_password:
            raise OrderingError(ReturnCode.VALIDATION_ERROR, "Token and new password are required")
        if not is_valid_token_format(token, TokenPurpose.RESET):
            raise OrderingError(ReturnCode.INVALID_TOKEN, "Invalid reset token format")
        _require_password_length(new_password)

        with self.database.transaction() as session:
            users = UserRepository(session)
            user = users.find_by_auth_token(token)
            if user is None:
                raise OrderingError(ReturnCode.INVALID_TOKEN, "Invalid or expired reset token")
            users.update_password(user.id, self.password_hasher.hash(new_password))
            logger.info(f"Password reset for user {user.id}")

    @traced("identity.get_profile")
    async def get_profile(self, claims: SessionClaims) -> PublicUser:
        with self.database.transaction() as session:
            user = UserRepository(session).find_by_id(claims.user_id)
            if user is None:
                raise OrderingError(ReturnCode.USER_NOT_FOUND, "User not found")
            return PublicUser.model_validate(user)

    @traced("identity.update_profile")
    async def update_profile(self, claims: SessionClaims, display_name: str | None) -> None:
        """Change the caller's display name.

        Raises:
            OrderingError: ``VALIDATION_ERROR`` or ``USER_NOT_FOUND``
        """
        if not display_name or not display_name.strip():
            raise OrderingError(ReturnCode.VALIDATION_ERROR, "Display name is required")
        with self.database.transaction() as session:
            if not UserRepository(session).update_display_name(claims.user_id, display_name.strip()):
                raise OrderingError(ReturnCode.USER_NOT_FOUND, "User not found")
