"""
Password hashing with Argon2id.

Argon2id is the recommended password hashing algorithm because:
- Memory-hard (resists GPU/ASIC attacks)
- Side-channel resistant (id variant)
- Winner of the Password Hashing Competition

Verification recomputes the hash of the presented password with the stored
salt and parameters and compares digests in constant time (inside argon2).
"""

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError, VerificationError

HASH_ALGORITHM = "argon2id"


class PasswordVerifier:
    """
    Hash and verify local passwords.

    Parameters default to ~250ms per hash on modern hardware; tests pass
    cheaper ones. Never logs or returns the plaintext or the hash.
    """

    algorithm = HASH_ALGORITHM

    def __init__(
        self,
        time_cost: int = 3,        # Number of iterations
        memory_cost: int = 65536,  # 64 MB memory usage
        parallelism: int = 4,      # Number of parallel threads
        hash_len: int = 32,        # Length of the hash in bytes
        salt_len: int = 16,        # Length of the random salt
    ):
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
        )

    def hash(self, password: str) -> str:
        """
        Hash a password using Argon2id.

        Returns:
            The hashed password string (includes algorithm, params, salt, and hash)
        """
        return self._hasher.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            password: The plaintext password to verify
            password_hash: The stored hash to verify against

        Returns:
            True if password matches, False otherwise
        """
        try:
            return self._hasher.verify(password_hash, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError):
            # Hash is malformed - treat as verification failure
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """
        Check if a password hash was made with outdated parameters.

        Returns:
            True if hash should be regenerated with current parameters
        """
        try:
            return self._hasher.check_needs_rehash(password_hash)
        except InvalidHashError:
            return True
