"""
auth/errors.py -- Exception taxonomy for the authentication core.

Every error carries a machine-readable ``code``. The HTTP layer decides which
codes are shown to callers; token and credential failures are collapsed into
uniform 401 responses there, so the specific class names here only ever reach
internal logs.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

from core.config import ConfigError


class AuthError(Exception):
    """Base class for all authentication-core failures."""

    code = "auth_error"


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class HashingFailed(AuthError):
    """bcrypt could not produce a hash (entropy, resources, oversized input)."""

    code = "hashing_failed"


class VerificationFailed(AuthError):
    """The stored hash is malformed. Never raised for a plain mismatch."""

    code = "verification_failed"


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


class MissingToken(AuthError):
    code = "missing_token"


class TokenError(AuthError):
    """Base class for the distinct terminal outcomes of token validation."""

    code = "invalid_token"


class MalformedToken(TokenError):
    code = "malformed"


class UnexpectedAlgorithm(TokenError):
    code = "unexpected_algorithm"


class BadSignature(TokenError):
    code = "bad_signature"


class TokenExpired(TokenError):
    code = "expired"


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class InvalidCredentials(AuthError):
    """Unknown username or wrong password. The two are indistinguishable."""

    code = "bad_credentials"


class UsernameTaken(AuthError):
    code = "username_taken"


class DuplicateUsername(AuthError):
    """Raised by the credential store when its unique constraint rejects an insert."""

    code = "duplicate_username"


# ---------------------------------------------------------------------------
# Admission and dependencies
# ---------------------------------------------------------------------------


class RateLimited(AuthError):
    code = "rate_limited"

    def __init__(self, client_key: str, retry_after: int) -> None:
        super().__init__(f"rate limit exceeded for {client_key}")
        self.client_key = client_key
        self.retry_after = retry_after


class AuthTimeout(AuthError):
    """A blocking dependency (store or hasher) missed the caller's deadline."""

    code = "timeout"

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} did not complete before the deadline")
        self.operation = operation


__all__ = [
    "AuthError",
    "AuthTimeout",
    "BadSignature",
    "ConfigError",
    "DuplicateUsername",
    "HashingFailed",
    "InvalidCredentials",
    "MalformedToken",
    "MissingToken",
    "RateLimited",
    "TokenError",
    "TokenExpired",
    "UnexpectedAlgorithm",
    "UsernameTaken",
    "VerificationFailed",
]
