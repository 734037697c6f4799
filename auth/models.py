"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, services and
routes do the work.

Layer rule: no imports from api/, core/ or inventory/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credential:
    """A username and its bcrypt hash, as persisted by CredentialStore.

    Immutable once created: there is no update or delete path. password_hash
    is excluded from repr so an accidental log line cannot leak it.
    """

    username: str
    password_hash: str = field(repr=False)
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a session token. Times are epoch seconds."""

    subject: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class SignupResult:
    """Outcome of AuthService.signup().

    token is None when the account was created but token issuance failed.
    The caller should then log in instead of registering again.
    """

    username: str
    token: str | None
    account_created: bool = True

    @property
    def session_established(self) -> bool:
        return self.token is not None
