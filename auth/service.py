"""
auth/service.py -- Signup and login orchestration.

AuthService wires CredentialStore, PasswordHasher and TokenService into the
two user-facing operations:

  signup(username, password) -> SignupResult
      pre-check -> hash -> insert -> issue. The store's UNIQUE constraint is
      the real guard against duplicates; the pre-check only avoids hashing
      for an obviously taken name. If the insert succeeds but issuing the
      token fails, the account exists: the result says so (token=None)
      instead of raising, so the caller logs in rather than re-registering.

  login(username, password) -> token
      Unknown username and wrong password raise the same InvalidCredentials.
      An unknown username still pays for one bcrypt verification against a
      dummy hash so response time does not reveal which usernames exist.
      Every success issues a new token; earlier tokens are neither reused
      nor extended.

Deadlines: store calls and bcrypt are the only blocking steps. Each runs on a
bounded thread pool and is awaited for whatever is left of the caller's
budget. Running out raises AuthTimeout, never InvalidCredentials. A read or
hash that overruns keeps running on its worker thread; its result is
discarded. The credential insert is the exception: the budget is checked
before it starts, but once submitted it is awaited to completion: a
committed account is always reported as created, never as AuthTimeout.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import TypeVar

from auth.errors import (
    AuthTimeout,
    DuplicateUsername,
    InvalidCredentials,
    UsernameTaken,
    VerificationFailed,
)
from auth.models import Credential, SignupResult
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenService

logger = logging.getLogger("inventory.auth")

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 5.0


class AuthService:
    """Signup/login use cases over injected collaborators.

    Usage:
        service = AuthService(store, PasswordHasher(), TokenService(secret))
        result = service.signup("alice", "secret1")
        token = service.login("alice", "secret1")
        service.close()
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = 8,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="auth")

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    def signup(self, username: str, password: str, timeout: float | None = None) -> SignupResult:
        deadline = self._deadline(timeout)

        if self._run("credential lookup", deadline, self.store.find_by_username, username) is not None:
            logger.info("Signup rejected: username already registered")
            raise UsernameTaken(username)

        password_hash = self._run("password hashing", deadline, self.hasher.hash, password)

        try:
            self._run_to_completion(
                "credential insert",
                deadline,
                self.store.insert,
                Credential(username=username, password_hash=password_hash),
            )
        except DuplicateUsername as exc:
            logger.info("Signup lost a race for username %s", username)
            raise UsernameTaken(username) from exc
        logger.info("User registered: %s", username)

        try:
            token = self.tokens.issue(username)
        except Exception:
            logger.exception("Account %s created but token issuance failed", username)
            return SignupResult(username=username, token=None)
        return SignupResult(username=username, token=token)

    def login(self, username: str, password: str, timeout: float | None = None) -> str:
        deadline = self._deadline(timeout)

        credential = self._run("credential lookup", deadline, self.store.find_by_username, username)
        if credential is None:
            self._run("password verification", deadline, self.hasher.verify_dummy, password)
            logger.info("Login failed for %s: unknown username", username)
            raise InvalidCredentials()

        try:
            matched = self._run(
                "password verification", deadline, self.hasher.verify, password, credential.password_hash
            )
        except VerificationFailed:
            logger.error("Stored password hash for %s is malformed", username)
            raise InvalidCredentials() from None
        if not matched:
            logger.info("Login failed for %s: wrong password", username)
            raise InvalidCredentials()

        token = self.tokens.issue(username)
        logger.info("User logged in: %s", username)
        return token

    def user_count(self, timeout: float | None = None) -> int:
        return self._run("user count", self._deadline(timeout), self.store.count)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Deadline helpers
    # ------------------------------------------------------------------

    def _deadline(self, timeout: float | None) -> float:
        budget = self.timeout_seconds if timeout is None else timeout
        return time.monotonic() + budget

    def _run(self, operation: str, deadline: float, fn: Callable[..., T], *args) -> T:
        """Run fn(*args) on the worker pool, waiting at most until deadline."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.warning("Deadline exhausted before %s", operation)
            raise AuthTimeout(operation)
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=remaining)
        except FutureTimeout:
            future.cancel()
            logger.warning("%s exceeded its deadline", operation)
            raise AuthTimeout(operation) from None

    def _run_to_completion(self, operation: str, deadline: float, fn: Callable[..., T], *args) -> T:
        """Run fn(*args) on the worker pool if the budget allows, then wait for it unconditionally."""
        if deadline - time.monotonic() <= 0:
            logger.warning("Deadline exhausted before %s", operation)
            raise AuthTimeout(operation)
        result = self._executor.submit(fn, *args).result()
        if time.monotonic() > deadline:
            logger.warning("%s finished after its deadline", operation)
        return result
