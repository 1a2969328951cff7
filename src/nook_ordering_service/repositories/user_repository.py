"""Repository for user identity records.

Like the other repositories, expected misses are reported with ``None`` or
``False`` rather than exceptions.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from nook_ordering_service.models.db_models import AppUser

logger = logging.getLogger(__name__)


class UserRepository:
    """CRUD operations on ``app_user`` within one session."""

    def __init__(self, session: Session) -> None:
        """Initialize repository.

        Args:
            session: Session bound to the caller's transaction
        """
        self.session = session

    def find_by_email(self, email: str) -> AppUser | None:
        """Find a user by exact email address."""
        return self.session.scalar(select(AppUser).where(AppUser.email == email))

    def find_by_id(self, user_id: int) -> AppUser | None:
        """Find a user by id."""
        return self.session.get(AppUser, user_id)

    def create_user(
        self,
        email: str,
        display_name: str | None,
        password_hash: str | None,
        phone: str | None = None,
        is_anonymous: bool = False,
    ) -> AppUser:
        """Insert a new, unverified user.

        Returns:
            The persisted user with its id assigned
        """
        now = datetime.now(UTC)
        user = AppUser(
            email=email,
            phone=phone,
            display_name=display_name,
            password_hash=password_hash,
            is_anonymous=is_anonymous,
            email_verified=False,
            created_at=now,
            last_active_at=now,
        )
        self.session.add(user)
        self.session.flush()
        logger.info(f"Created user {user.id}")
        return user

    def update_last_active(self, user_id: int) -> None:
        """Stamp the user's last activity with the current time."""
        self.session.execute(
            update(AppUser).where(AppUser.id == user_id).values(last_active_at=datetime.now(UTC))
        )

    def set_auth_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        """Store a token, replacing whichever token the user held before."""
        self.session.execute(
            update(AppUser)
            .where(AppUser.id == user_id)
            .values(auth_token=token, auth_token_expires=expires_at)
        )

    def find_by_auth_token(self, token: str) -> AppUser | None:
        """Find the user holding ``token`` if it has not expired yet."""
        return self.session.scalar(
            select(AppUser).where(
                AppUser.auth_token == token,
                AppUser.auth_token_expires > datetime.now(UTC),
            )
        )

    def clear_auth_token(self, user_id: int) -> None:
        """Consume the user's token so the emailed link stops working."""
        self.session.execute(
            update(AppUser)
            .where(AppUser.id == user_id)
            .values(auth_token=None, auth_token_expires=None)
        )

    def mark_email_verified(self, user_id: int) -> None:
        """Flag the user's email address as verified."""
        self.session.execute(
            update(AppUser).where(AppUser.id == user_id).values(email_verified=True)
        )

    def update_password(self, user_id: int, password_hash: str) -> None:
        """Replace the password hash and consume the reset token."""
        self.session.execute(
            update(AppUser)
            .where(AppUser.id == user_id)
            .values(password_hash=password_hash, auth_token=None, auth_token_expires=None)
        )

    def update_display_name(self, user_id: int, display_name: str) -> bool:
        """Rename a user.

        Returns:
            True if the user exists, False otherwise
        """
        result = self.session.execute(
            update(AppUser).where(AppUser.id == user_id).values(display_name=display_name)
        )
        return result.rowcount > 0

    def clear_expired_tokens(self) -> int:
        """Remove tokens whose expiry has passed.

        Returns:
            Number of users whose token was cleared
        """
        result = self.session.execute(
            update(AppUser)
            .where(AppUser.auth_token_expires < datetime.now(UTC))
            .values(auth_token=None, auth_token_expires=None)
        )
        return result.rowcount
