"""
auth/store.py -- SQLAlchemy Core persistence layer for credentials.

Pattern: Repository + Data Mapper (same as inventory/store.py).
CredentialStore is the repository; _row_to_credential is the mapper.
Service and route code never touches SQL directly.

Uniqueness: UNIQUE(username) is enforced by the database, not by a prior
existence check. Two concurrent signups for the same name can both pass the
service's pre-check; the INSERT of the second one fails with IntegrityError,
which insert() turns into DuplicateUsername.

Credentials are immutable: there is no update or delete path.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB URL: Settings.database_url (SQLite file next to the project by default).

Layer rule: no imports from api/ or inventory/. core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateUsername
from auth.models import Credential
from core.database import make_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for Credential records.

    Usage:
        store = CredentialStore("sqlite:///:memory:")
        store.insert(Credential(username="alice", password_hash=hasher.hash("secret")))
        cred = store.find_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def find_by_username(self, username: str) -> Credential | None:
        """Look up a credential by exact username (case-sensitive). None if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.username == username)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def insert(self, credential: Credential) -> int:
        """Insert a new credential and return its database ID.

        Raises DuplicateUsername when the UNIQUE constraint rejects the row,
        including when a concurrent insert for the same name won the race.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=credential.username,
                        password_hash=credential.password_hash,
                        created_at=_now_iso(),
                    )
                )
        except IntegrityError as exc:
            raise DuplicateUsername(credential.username) from exc
        return result.inserted_primary_key[0]

    def count(self) -> int:
        """Return the number of registered users."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> Credential:
    return Credential(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
