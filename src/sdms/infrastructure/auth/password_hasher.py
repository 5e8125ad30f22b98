"""Password hashing using Argon2id with a per-account random salt.

Produces a raw digest and salt pair that are stored separately on the
account. Verification recomputes the digest and compares it in constant time.

Records written by the previous system (HMAC-SHA512 keyed by the salt) still
verify and are flagged for rehashing so a successful login can upgrade them.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from argon2.low_level import Type, hash_secret_raw

from sdms.core.config import Settings
from sdms.core.exceptions import InvalidArgumentError

SALT_BYTES = 32
DIGEST_BYTES = 32
LEGACY_DIGEST_BYTES = 64  # HMAC-SHA512 output


@dataclass(frozen=True)
class PasswordDigest:
    """A password digest and the salt it was computed with.

    Attributes:
        hash: Raw digest bytes.
        salt: Random salt bytes, unique per call to ``SecretHasher.hash``.
    """

    hash: bytes
    salt: bytes


def generate_random_password(length: int = 48) -> str:
    """Generate a random password nobody knows.

    Used for accounts created through an external identity provider so that
    password login stays impossible until an explicit reset.

    Args:
        length: Number of random bytes before encoding.

    Returns:
        URL-safe random string (at least 32 characters).
    """
    return secrets.token_urlsafe(length)


def _require_password(password: str) -> bytes:
    if not password:
        raise InvalidArgumentError("Password must not be empty")
    return password.encode("utf-8")


class SecretHasher:
    """Hashes and verifies passwords.

    Parameters are fixed at construction and never change afterwards.

    Example:
        >>> hasher = SecretHasher(time_cost=1, memory_cost=8, parallelism=1)
        >>> digest = hasher.hash("SecureP@ss1")
        >>> hasher.verify("SecureP@ss1", digest.hash, digest.salt)
        True
    """

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
    ) -> None:
        """Initialize the hasher.

        Args:
            time_cost: Argon2 iterations.
            memory_cost: Argon2 memory in KiB.
            parallelism: Argon2 lanes.
        """
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism
        # Random bytes no password hashes to; verifying against them costs a full hash
        self._dummy = PasswordDigest(
            hash=secrets.token_bytes(DIGEST_BYTES), salt=secrets.token_bytes(SALT_BYTES)
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecretHasher":
        """Build a hasher from application settings."""
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    def _argon2(self, secret: bytes, salt: bytes) -> bytes:
        return hash_secret_raw(
            secret=secret,
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=DIGEST_BYTES,
            type=Type.ID,
        )

    def hash(self, password: str) -> PasswordDigest:
        """Hash a password with a fresh random salt.

        Args:
            password: The plaintext password.

        Returns:
            PasswordDigest with the raw digest and its salt.

        Raises:
            InvalidArgumentError: If the password is empty or None.
        """
        secret = _require_password(password)
        salt = secrets.token_bytes(SALT_BYTES)
        return PasswordDigest(hash=self._argon2(secret, salt), salt=salt)

    def verify(self, password: str, stored_hash: bytes, stored_salt: bytes) -> bool:
        """Verify a password against a stored digest and salt.

        The full digest is always computed and compared with
        ``hmac.compare_digest``; there is no early exit on the first
        differing byte.

        Args:
            password: The candidate plaintext password.
            stored_hash: Digest read from the account.
            stored_salt: Salt read from the account.

        Returns:
            True if the password matches, False otherwise.

        Raises:
            InvalidArgumentError: If the password is empty or None.
        """
        secret = _require_password(password)
        if len(stored_hash) == LEGACY_DIGEST_BYTES:
            computed = hmac.new(stored_salt, secret, hashlib.sha512).digest()
        else:
            computed = self._argon2(secret, stored_salt)
        return hmac.compare_digest(computed, stored_hash)

    def needs_rehash(self, stored_hash: bytes, stored_salt: bytes) -> bool:
        """Check if a stored digest was produced by an outdated scheme.

        Args:
            stored_hash: Digest read from the account.
            stored_salt: Salt read from the account.

        Returns:
            True if the password should be rehashed after a successful verify.
        """
        return len(stored_hash) != DIGEST_BYTES or len(stored_salt) != SALT_BYTES

    def dummy_verify(self, password: str) -> bool:
        """Run a full verification against a throwaway digest.

        Used when no account matches so that unknown emails cost the same
        time as wrong passwords. Always returns False.
        """
        self.verify(password or "-", self._dummy.hash, self._dummy.salt)
        return False
