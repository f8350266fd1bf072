"""
Password hashing with argon2id.

Registration, login and data seeding all hash through a ``PasswordHasher``
built here so that every stored digest shares the configured parameters.
"""

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError

from utilities.config import config


class PasswordHasher:
    """One-way salted hash and verify for member passwords."""

    def __init__(
        self,
        time_cost: int = config.password_time_cost,
        memory_cost: int = config.password_memory_cost,
        parallelism: int = config.password_parallelism,
    ):
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )

    def hash(self, clear: str) -> str:
        """Hash a clear-text password."""
        return self._hasher.hash(clear)

    def verify(self, digest: str, clear: str) -> bool:
        """Return True if ``clear`` matches ``digest``."""
        try:
            return self._hasher.verify(digest, clear)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        """Check whether a digest was created with different parameters."""
        return self._hasher.check_needs_rehash(digest)
