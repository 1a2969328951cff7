"""Single-use tokens for email verification and password reset.

A token is its purpose prefix followed by 32 random bytes in hex, so the
purpose can be checked cheaply before any database lookup.
"""

import secrets
from datetime import UTC, datetime, timedelta
from enum import Enum


class TokenPurpose(str, Enum):
    VERIFY = "verify"
    RESET = "reset"


VERIFY_TOKEN_TTL_HOURS = 24
RESET_TOKEN_TTL_HOURS = 1


def generate_token(purpose: TokenPurpose) -> str:
    return f"{purpose.value}_{secrets.token_hex(32)}"


def get_token_expiry(hours: int, now: datetime | None = None) -> datetime:
    """Get the expiry timestamp ``hours`` from now (UTC)."""
    return (now or datetime.now(UTC)) + timedelta(hours=hours)


def is_valid_token_format(token: str | None, purpose: TokenPurpose) -> bool:
    """Check that a token carries the expected prefix and a non-empty body."""
    if not token or not isinstance(token, str):
        return False
    prefix = f"{purpose.value}_"
    return token.startswith(prefix) and len(token) > len(prefix)
