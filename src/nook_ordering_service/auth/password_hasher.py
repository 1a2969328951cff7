"""Password hashing with bcrypt through passlib."""

from passlib.context import CryptContext


class PasswordHasher:
    """Hashes and verifies passwords with a configurable bcrypt work factor."""

    def __init__(self, rounds: int = 12) -> None:
        """Initialize the hasher.

        Args:
            rounds: bcrypt cost factor (4-31)
        """
        self.rounds = rounds
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Check a password against a stored hash.

        Users without a hash (pure guests) never verify.
        """
        if not password_hash:
            return False
        try:
            return self.context.verify(password, password_hash)
        except ValueError:
            return False
