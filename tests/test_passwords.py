"""Unit tests for auth/passwords.py -- bcrypt hashing and verification.

Covers:
- verify(p, hash(p)) is True; verify(q, hash(p)) is False
- hashes are salted (same input, different output) and never contain the plaintext
- cost factor is applied and floors are enforced
- malformed stored hash raises VerificationFailed; plain mismatch never does
- oversized input: HashingFailed on hash, False on verify
"""

from __future__ import annotations

import bcrypt
import pytest

from auth.errors import HashingFailed, VerificationFailed
from auth.passwords import PasswordHasher


@pytest.fixture(scope="module")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=10)


def test_round_trip(hasher: PasswordHasher) -> None:
    stored = hasher.hash("secret1")
    assert hasher.verify("secret1", stored) is True


@pytest.mark.parametrize("attempt", ["secret2", "Secret1", "secret1 ", "", "secret"])
def test_mismatch(hasher: PasswordHasher, attempt: str) -> None:
    stored = hasher.hash("secret1")
    assert hasher.verify(attempt, stored) is False


def test_hash_is_salted(hasher: PasswordHasher) -> None:
    assert hasher.hash("secret1") != hasher.hash("secret1")


def test_hash_does_not_contain_plaintext(hasher: PasswordHasher) -> None:
    assert "correcthorse" not in hasher.hash("correcthorse")


def test_unicode_password(hasher: PasswordHasher) -> None:
    stored = hasher.hash("pässwörd-✓")
    assert hasher.verify("pässwörd-✓", stored)
    assert not hasher.verify("passwort-✓", stored)


def test_cost_factor_applied() -> None:
    stored = PasswordHasher(rounds=11).hash("secret1")
    assert stored.startswith("$2b$11$")


def test_default_cost_is_twelve() -> None:
    assert PasswordHasher().rounds == 12


def test_cost_below_floor_rejected() -> None:
    with pytest.raises(ValueError):
        PasswordHasher(rounds=4)


@pytest.mark.parametrize("bad_hash", ["", "not-a-bcrypt-hash", "$2b$10$tooshort"])
def test_malformed_hash_raises(hasher: PasswordHasher, bad_hash: str) -> None:
    with pytest.raises(VerificationFailed):
        hasher.verify("secret1", bad_hash)


def test_hash_from_other_bcrypt_user_verifies(hasher: PasswordHasher) -> None:
    """Hashes produced elsewhere with a different cost still verify."""
    stored = bcrypt.hashpw(b"secret1", bcrypt.gensalt(rounds=10)).decode()
    assert hasher.verify("secret1", stored)


def test_oversized_password_cannot_be_hashed(hasher: PasswordHasher) -> None:
    with pytest.raises(HashingFailed):
        hasher.hash("x" * 73)


def test_oversized_password_never_verifies(hasher: PasswordHasher) -> None:
    stored = hasher.hash("x" * 72)
    assert hasher.verify("x" * 73, stored) is False


def test_verify_dummy_returns_nothing(hasher: PasswordHasher) -> None:
    assert hasher.verify_dummy("anything") is None
