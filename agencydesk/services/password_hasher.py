"""bcrypt password hashing."""

import bcrypt

from ..domain.errors import PasswordHashingError

BCRYPT_MAX_BYTES = 72
MIN_ROUNDS = 10


class PasswordHasher:
    """Salted one-way hashing with a tunable bcrypt cost factor."""

    def __init__(self, rounds: int = 12) -> None:
        if rounds < MIN_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_ROUNDS}.")
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """
        Hash a password with a fresh salt.

        Raises:
            ValueError: If the password exceeds bcrypt's 72-byte input limit
        """
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValueError("Password exceeds 72 bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """
        Check a candidate password against a stored digest.

        Raises:
            PasswordHashingError: If the stored digest is not a valid bcrypt hash
        """
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            # Such a password could never have been hashed.
            return False
        try:
            return bcrypt.checkpw(encoded, digest.encode("utf-8"))
        except ValueError as exc:
            raise PasswordHashingError("Stored password digest is invalid.") from exc
