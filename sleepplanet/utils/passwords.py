"""Password hashing (Argon2id).

Hashes are stored in the PHC string format (``$argon2id$v=19$m=..,t=..,p=..$salt$digest``),
so verification always uses the parameters that produced the stored value and
the work factor can be raised later without a schema change.
"""
from argon2 import PasswordHasher as _Argon2Hasher
from argon2 import Type
from argon2.exceptions import HashingError as _Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from sleepplanet.errors import HashingError


class PasswordHasher:
    """One-way password hashing with a fresh random salt per call."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._hasher = _Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )

    @classmethod
    def from_settings(cls, settings) -> "PasswordHasher":
        return cls(
            time_cost=settings.ARGON2_TIME_COST,
            memory_cost=settings.ARGON2_MEMORY_COST,
            parallelism=settings.ARGON2_PARALLELISM,
        )

    def hash(self, password: str) -> str:
        """Return the encoded hash of ``password``.

        Raises:
            HashingError: the underlying library could not produce a hash.
        """
        try:
            return self._hasher.hash(password)
        except _Argon2HashingError as exc:
            raise HashingError(f"password hashing failed: {exc}") from exc

    def verify(self, password: str, password_hash: str) -> bool:
        """Check ``password`` against a stored hash in constant time.

        Returns False on a mismatch.

        Raises:
            HashingError: ``password_hash`` is not a parseable Argon2 hash.
        """
        try:
            return self._hasher.verify(password_hash, password)
        except VerifyMismatchError:
            return False
        except InvalidHashError as exc:
            raise HashingError("stored password hash is malformed") from exc
        except VerificationError:
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """True when ``password_hash`` was produced with other parameters than the current ones."""
        try:
            return self._hasher.check_needs_rehash(password_hash)
        except InvalidHashError as exc:
            raise HashingError("stored password hash is malformed") from exc
