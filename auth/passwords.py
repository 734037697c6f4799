"""
auth/passwords.py -- bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

bcrypt only looks at the first 72 bytes of a password and current releases
refuse longer input outright. hash() reports that as HashingFailed; verify()
returns False, because no hash this service produced can match such input.
The API layer caps password length well below that (see api/models.py).

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import HashingFailed, VerificationFailed

logger = logging.getLogger("inventory.auth")

DEFAULT_ROUNDS = 12
MIN_ROUNDS = 10
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted, adaptive one-way hashing for low-entropy secrets.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("s3cret")
        hasher.verify("s3cret", stored)   # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if rounds < MIN_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_ROUNDS}, got {rounds}")
        self.rounds = rounds
        # Computed up front so the first unknown-username login is not
        # measurably slower than later ones.
        self._dummy_hash: bytes = bcrypt.hashpw(b"inventory_timing_dummy", bcrypt.gensalt(rounds=rounds))

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise HashingFailed(f"password exceeds {BCRYPT_MAX_BYTES} bytes")
        try:
            return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")
        except (ValueError, OSError, MemoryError) as exc:
            raise HashingFailed(type(exc).__name__) from exc

    def verify(self, plaintext: str, hash_value: str) -> bool:
        """Return True if plaintext matches hash_value.

        bcrypt.checkpw compares in constant time. A mismatch returns False; a
        hash that bcrypt cannot parse raises VerificationFailed.
        """
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            stored = hash_value.encode("ascii")
        except (AttributeError, UnicodeEncodeError) as exc:
            raise VerificationFailed("stored hash is not an ASCII string") from exc
        try:
            return bcrypt.checkpw(encoded, stored)
        except ValueError as exc:
            raise VerificationFailed("stored hash is malformed") from exc

    def verify_dummy(self, plaintext: str) -> None:
        """Burn one verification against a throwaway hash.

        Called when the username does not exist so the response time matches
        a wrong-password attempt and does not reveal which usernames exist.
        """
        encoded = plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]
        bcrypt.checkpw(encoded, self._dummy_hash)
