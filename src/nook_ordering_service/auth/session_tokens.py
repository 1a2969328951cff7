"""Signed session tokens (JWT, HS256) issued at login."""

import logging
import re
from datetime import UTC, datetime, timedelta

import jwt

from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.models.api_models import SessionClaims

logger = logging.getLogger(__name__)

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int) -> timedelta:
    """Parse a lifetime such as ``"24h"``, ``"30m"``, ``"7d"`` or ``"3600"``.

    Raises:
        ValueError: If the value is not a recognised duration
    """
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


class SessionTokenManager:
    """Issues and decodes session tokens."""

    algorithm = "HS256"

    def __init__(self, secret: str, expires_in: str | int = "24h") -> None:
        """Initialize the manager.

        Args:
            secret: Signing secret
            expires_in: Token lifetime (see ``parse_duration``)

        Raises:
            ValueError: If the secret is empty
        """
        if not secret:
            raise ValueError("A session token secret must be provided")
        self.secret = secret
        self.lifetime = parse_duration(expires_in)

    def issue(self, claims: SessionClaims, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(UTC)
        payload = {
            **claims.model_dump(),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> SessionClaims:
        """Verify a token and return its claims.

        Raises:
            OrderingError: ``TOKEN_EXPIRED`` or ``INVALID_TOKEN``
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise OrderingError(ReturnCode.TOKEN_EXPIRED, "Token has expired", status_code=401)
        except jwt.InvalidTokenError:
            raise OrderingError(ReturnCode.INVALID_TOKEN, "Invalid token", status_code=401)

        try:
            return SessionClaims.model_validate(payload)
        except ValueError:
            logger.warning("Session token is missing required claims")
            raise OrderingError(ReturnCode.INVALID_TOKEN, "Invalid token", status_code=401)
