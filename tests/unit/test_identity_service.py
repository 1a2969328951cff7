"""Unit tests for IdentityService."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select

from nook_ordering_service.auth.password_hasher import PasswordHasher
from nook_ordering_service.auth.session_tokens import SessionTokenManager
from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import SessionClaims
from nook_ordering_service.models.db_models import AppUser
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.repositories.user_repository import UserRepository
from nook_ordering_service.services.email_service import EmailResult
from nook_ordering_service.services.identity_service import (
    FORGOT_PASSWORD_MESSAGE,
    RESEND_VERIFICATION_MESSAGE,
    IdentityService,
    TokenCheck,
)

TEST_PASSWORD = "correct-horse"


def _load_user(database: Database, email: str) -> AppUser:
    with database.transaction() as session:
        return UserRepository(session).find_by_email(email)


def _expire_token(database: Database, user_id: int) -> None:
    with database.transaction() as session:
        user = session.get(AppUser, user_id)
        user.auth_token_expires = datetime.now(UTC) - timedelta(minutes=1)


@pytest.mark.unit
class TestRegistration:
    """Test suite for IdentityService.register and verify_email."""

    @pytest.mark.asyncio
    async def test_register_creates_unverified_user_and_emails_token(
        self, identity_service: IdentityService, database: Database, mock_email_service: MagicMock
    ) -> None:
        """Test that registration stores a hash and a 24h verification token."""
        user, email_sent = await identity_service.register("sam@example.com", "long-enough", "Sam", "0123")

        assert email_sent is True
        assert user.email == "sam@example.com"
        assert user.email_verified is False
        assert user.is_anonymous is False

        email, token = mock_email_service.send_verification_email.call_args.args
        assert email == "sam@example.com"
        assert token.startswith("verify_")

        stored = _load_user(database, "sam@example.com")
        assert stored.auth_token == token
        assert stored.password_hash != "long-enough"
        assert stored.phone == "0123"

    @pytest.mark.asyncio
    async def test_register_reports_unsent_email(
        self, identity_service: IdentityService, mock_email_service: MagicMock
    ) -> None:
        """Test that a failed verification email does not fail registration."""
        mock_email_service.send_verification_email = AsyncMock(
            return_value=EmailResult(success=False, error="down")
        )

        user, email_sent = await identity_service.register("sam@example.com", "long-enough", "Sam")

        assert user.id > 0
        assert email_sent is False

    @pytest.mark.asyncio
    async def test_duplicate_email(self, identity_service: IdentityService) -> None:
        """Test that registering an existing email is USER_EXISTS."""
        await identity_service.register("sam@example.com", "long-enough", "Sam")

        with pytest.raises(OrderingError) as exc_info:
            await identity_service.register("sam@example.com", "other-password", "Samuel")

        assert exc_info.value.return_code == ReturnCode.USER_EXISTS

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_email(
        self, identity_service: IdentityService, database: Database, mock_email_service: MagicMock
    ) -> None:
        """Test that losing a registration race on the unique email is USER_EXISTS."""
        await identity_service.register("sam@example.com", "long-enough", "Sam")
        mock_email_service.send_verification_email.reset_mock()

        with patch.object(UserRepository, "find_by_email", return_value=None):
            with pytest.raises(OrderingError) as exc_info:
                await identity_service.register("sam@example.com", "other-password", "Samuel")

        assert exc_info.value.return_code == ReturnCode.USER_EXISTS
        assert exc_info.value.status_code == 400
        mock_email_service.send_verification_email.assert_not_awaited()
        with database.transaction() as session:
            assert session.scalar(select(func.count()).select_from(AppUser)) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("email", "password", "display_name"),
        [(None, "long-enough", "Sam"), ("sam@example.com", None, "Sam"), ("sam@example.com", "long-enough", "")],
    )
    async def test_register_requires_fields(
        self, identity_service: IdentityService, email: str | None, password: str | None, display_name: str
    ) -> None:
        """Test that missing registration fields are VALIDATION_ERROR."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.register(email, password, display_name)

        assert exc_info.value.return_code == ReturnCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_register_rejects_short_password(self, identity_service: IdentityService) -> None:
        """Test that passwords under 8 characters are refused."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.register("sam@example.com", "short", "Sam")

        assert exc_info.value.return_code == ReturnCode.VALIDATION_ERROR
        assert "8 characters" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_verify_email_is_single_use(
        self, identity_service: IdentityService, database: Database, mock_email_service: MagicMock
    ) -> None:
        """Test that a verification token verifies once and is then consumed."""
        await identity_service.register("sam@example.com", "long-enough", "Sam")
        token = mock_email_service.send_verification_email.call_args.args[1]

        assert await identity_service.verify_email(token) == TokenCheck.VALID
        assert await identity_service.verify_email(token) == TokenCheck.EXPIRED

        stored = _load_user(database, "sam@example.com")
        assert stored.email_verified is True
        assert stored.auth_token is None

    @pytest.mark.asyncio
    async def test_verify_email_expired_token(
        self, identity_service: IdentityService, database: Database, mock_email_service: MagicMock
    ) -> None:
        """Test that a token past its expiry is EXPIRED and leaves the user unverified."""
        user, _ = await identity_service.register("sam@example.com", "long-enough", "Sam")
        token = mock_email_service.send_verification_email.call_args.args[1]
        _expire_token(database, user.id)

        assert await identity_service.verify_email(token) == TokenCheck.EXPIRED
        assert _load_user(database, "sam@example.com").email_verified is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "reset_abc", "garbage"])
    async def test_verify_email_malformed_token(self, identity_service: IdentityService, token: str | None) -> None:
        """Test that tokens without the verify prefix are INVALID."""
        assert await identity_service.verify_email(token) == TokenCheck.INVALID


@pytest.mark.unit
class TestLogin:
    """Test suite for IdentityService.login."""

    @pytest.mark.asyncio
    async def test_login_issues_session_token(
        self, identity_service: IdentityService, token_manager: SessionTokenManager, verified_user: AppUser
    ) -> None:
        """Test that valid credentials of a verified user yield a session token."""
        token, user = await identity_service.login("jo@example.com", TEST_PASSWORD)

        claims = token_manager.decode(token)
        assert claims.user_id == verified_user.id
        assert claims.email_verified is True
        assert user.display_name == "Jo"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("email", "password"), [("jo@example.com", "wrong-horse"), ("nobody@example.com", TEST_PASSWORD)])
    async def test_bad_credentials(
        self, identity_service: IdentityService, verified_user: AppUser, email: str, password: str
    ) -> None:
        """Test that unknown users and wrong passwords get the same INVALID_CREDENTIALS."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.login(email, password)

        assert exc_info.value.return_code == ReturnCode.INVALID_CREDENTIALS
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unverified_user_cannot_log_in_until_verified(
        self, identity_service: IdentityService, mock_email_service: MagicMock
    ) -> None:
        """Test that login reports EMAIL_NOT_VERIFIED with the user's id until verification."""
        user, _ = await identity_service.register("sam@example.com", "long-enough", "Sam")

        with pytest.raises(OrderingError) as exc_info:
            await identity_service.login("sam@example.com", "long-enough")

        assert exc_info.value.return_code == ReturnCode.EMAIL_NOT_VERIFIED
        assert exc_info.value.extra == {"user_id": user.id, "email": "sam@example.com"}

        await identity_service.verify_email(mock_email_service.send_verification_email.call_args.args[1])
        token, _ = await identity_service.login("sam@example.com", "long-enough")
        assert token

    @pytest.mark.asyncio
    async def test_login_requires_fields(self, identity_service: IdentityService) -> None:
        """Test that missing credentials are VALIDATION_ERROR."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.login("jo@example.com", None)

        assert exc_info.value.return_code == ReturnCode.VALIDATION_ERROR


@pytest.mark.unit
class TestPasswordRecovery:
    """Test suite for resend-verification, forgot-password and reset-password."""

    @pytest.mark.asyncio
    async def test_forgot_password_response_does_not_reveal_account(
        self, identity_service: IdentityService, verified_user: AppUser, mock_email_service: MagicMock
    ) -> None:
        """Test that known and unknown emails get the same message and only known ones get mail."""
        known = await identity_service.forgot_password("jo@example.com")
        unknown = await identity_service.forgot_password("nobody@example.com")

        assert known == unknown == FORGOT_PASSWORD_MESSAGE
        mock_email_service.send_password_reset_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reset_password_flow(
        self,
        identity_service: IdentityService,
        database: Database,
        password_hasher: PasswordHasher,
        verified_user: AppUser,
        mock_email_service: MagicMock,
    ) -> None:
        """Test that a reset token allows exactly one password change."""
        await identity_service.forgot_password("jo@example.com")
        token = mock_email_service.send_password_reset_email.call_args.args[1]

        assert await identity_service.check_reset_token(token) == TokenCheck.VALID
        await identity_service.reset_password(token, "brand-new-pass")

        stored = _load_user(database, "jo@example.com")
        assert password_hasher.verify("brand-new-pass", stored.password_hash)
        assert await identity_service.check_reset_token(token) == TokenCheck.EXPIRED
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.reset_password(token, "another-pass")
        assert exc_info.value.return_code == ReturnCode.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_new_token_replaces_previous(
        self, identity_service: IdentityService, verified_user: AppUser, mock_email_service: MagicMock
    ) -> None:
        """Test that requesting a second reset invalidates the first link."""
        await identity_service.forgot_password("jo@example.com")
        first = mock_email_service.send_password_reset_email.call_args.args[1]
        await identity_service.forgot_password("jo@example.com")

        assert await identity_service.check_reset_token(first) == TokenCheck.EXPIRED

    @pytest.mark.asyncio
    async def test_expired_reset_token(
        self,
        identity_service: IdentityService,
        database: Database,
        verified_user: AppUser,
        mock_email_service: MagicMock,
    ) -> None:
        """Test that a reset token past its hour is rejected."""
        await identity_service.forgot_password("jo@example.com")
        token = mock_email_service.send_password_reset_email.call_args.args[1]
        _expire_token(database, verified_user.id)

        with pytest.raises(OrderingError) as exc_info:
            await identity_service.reset_password(token, "brand-new-pass")

        assert exc_info.value.return_code == ReturnCode.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_reset_rejects_verification_token(self, identity_service: IdentityService) -> None:
        """Test that a verify token cannot be used to reset a password."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.reset_password("verify_abc", "brand-new-pass")

        assert exc_info.value.return_code == ReturnCode.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_reset_rejects_short_password(self, identity_service: IdentityService) -> None:
        """Test that the new password must meet the minimum length."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.reset_password("reset_abc", "short")

        assert exc_info.value.return_code == ReturnCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_resend_verification_only_for_unverified_users(
        self, identity_service: IdentityService, verified_user: AppUser, mock_email_service: MagicMock
    ) -> None:
        """Test that verified and unknown users get the generic message without mail."""
        assert await identity_service.resend_verification("jo@example.com") == RESEND_VERIFICATION_MESSAGE
        assert await identity_service.resend_verification("nobody@example.com") == RESEND_VERIFICATION_MESSAGE
        mock_email_service.send_verification_email.assert_not_called()

        await identity_service.register("sam@example.com", "long-enough", "Sam")
        assert await identity_service.resend_verification("sam@example.com") == RESEND_VERIFICATION_MESSAGE
        assert mock_email_service.send_verification_email.await_count == 2

    @pytest.mark.asyncio
    async def test_recovery_requires_email(self, identity_service: IdentityService) -> None:
        """Test that an empty email is VALIDATION_ERROR."""
        with pytest.raises(OrderingError) as exc_info:
            await identity_service.forgot_password("")

        assert exc_info.value.return_code == ReturnCode.VALIDATION_ERROR


@pytest.mark.unit
class TestProfile:
    """Test suite for profile read and update."""

    @pytest.mark.asyncio
    async def test_get_and_update_profile(
        self, identity_service: IdentityService, verified_user: AppUser
    ) -> None:
        """Test that a user can rename themselves."""
        claims = SessionClaims(user_id=verified_user.id, email="jo@example.com")

        await identity_service.update_profile(claims, "  Joanna ")
        profile = await identity_service.get_profile(claims)

        assert profile.display_name == "Joanna"
        assert profile.email == "jo@example.com"

    @pytest.mark.asyncio
    async def test_unknown_user(self, identity_service: IdentityService) -> None:
        """Test that a token for a deleted user is USER_NOT_FOUND."""
        claims = SessionClaims(user_id=999, email="ghost@example.com")

        with pytest.raises(OrderingError) as exc_info:
            await identity_service.get_profile(claims)

        assert exc_info.value.return_code == ReturnCode.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_requires_display_name(
        self, identity_service: IdentityService, verified_user: AppUser
    ) -> None:
        """Test that a blank display name is VALIDATION_ERROR."""
        claims = SessionClaims(user_id=verified_user.id, email="jo@example.com")

        with pytest.raises(OrderingError) as exc_info:
            await identity_service.update_profile(claims, "   ")

        assert exc_info.value.return_code == ReturnCode.VALIDATION_ERROR
