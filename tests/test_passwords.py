"""Tests for Argon2 password hashing"""
import pytest

from sleepplanet.errors import HashingError
from sleepplanet.utils.passwords import PasswordHasher


@pytest.fixture
def fast_hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


def test_hash_verifies_original_password(fast_hasher: PasswordHasher):
    """The password a hash was made from verifies"""
    encoded = fast_hasher.hash("Secret123")
    assert encoded.startswith("$argon2id$")
    assert fast_hasher.verify("Secret123", encoded) is True


def test_other_password_does_not_verify(fast_hasher: PasswordHasher):
    """A different password is a plain mismatch, not an error"""
    encoded = fast_hasher.hash("Secret123")
    assert fast_hasher.verify("Secret124", encoded) is False
    assert fast_hasher.verify("", encoded) is False


def test_same_password_gets_fresh_salt(fast_hasher: PasswordHasher):
    first = fast_hasher.hash("Secret123")
    second = fast_hasher.hash("Secret123")
    assert first != second
    assert fast_hasher.verify("Secret123", first)
    assert fast_hasher.verify("Secret123", second)


def test_malformed_hash_raises(fast_hasher: PasswordHasher):
    """An unparseable stored hash is an error, never a silent False"""
    with pytest.raises(HashingError):
        fast_hasher.verify("Secret123", "not-a-hash")


def test_verify_uses_parameters_embedded_in_hash(fast_hasher: PasswordHasher):
    """A hash made with other parameters still verifies"""
    stronger = PasswordHasher(time_cost=2, memory_cost=2048, parallelism=1)
    encoded = stronger.hash("Secret123")
    assert fast_hasher.verify("Secret123", encoded) is True


def test_needs_rehash_when_parameters_change(fast_hasher: PasswordHasher):
    stronger = PasswordHasher(time_cost=2, memory_cost=1024, parallelism=1)
    encoded = fast_hasher.hash("Secret123")
    assert fast_hasher.needs_rehash(encoded) is False
    assert stronger.needs_rehash(encoded) is True


def test_needs_rehash_malformed_hash_raises(fast_hasher: PasswordHasher):
    with pytest.raises(HashingError):
        fast_hasher.needs_rehash("$2b$10$not-an-argon2-hash")
