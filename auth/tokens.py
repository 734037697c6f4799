"""
auth/tokens.py -- Signed, time-bounded session tokens.

Security design decisions:
  Format: compact JWS (a JWT) built with python-jose, HS256 only. Claims are
       sub (username), iat, exp and a random jti so that two tokens issued to
       the same user in the same second are still distinct grants.

  Algorithm pinning: the header alg is compared against HS256 before any
       signature check. A token claiming "none", RS256 or any other scheme is
       rejected as UnexpectedAlgorithm, closing the algorithm-confusion hole.

  Distinct outcomes: validate() raises exactly one of MalformedToken,
       UnexpectedAlgorithm, BadSignature or TokenExpired. The HTTP layer folds
       them into one 401; the distinction exists for internal logs and tests.

  Expiry: a token is valid through its exact exp second (now > exp fails).
       EXPIRY_LEEWAY_SECONDS documents the tolerated clock skew, which is zero.

  SECRET: injected as bytes at construction time (see core/config.py). The
       service never reads configuration or environment itself.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from collections.abc import Callable

from jose import jws, jwt
from jose.exceptions import JWSError, JWTError

from auth.errors import BadSignature, ConfigError, MalformedToken, TokenExpired, UnexpectedAlgorithm
from auth.models import TokenClaims

logger = logging.getLogger("inventory.auth")

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 24 * 60 * 60
EXPIRY_LEEWAY_SECONDS = 0


class TokenService:
    """Issues and validates bearer session tokens.

    Usage:
        tokens = TokenService(secret=settings.secret_bytes, ttl_seconds=86400)
        token = tokens.issue("alice")
        tokens.validate(token)   # "alice"

    clock returns epoch seconds; tests pass a fake to step through expiry.
    """

    def __init__(
        self,
        secret: bytes,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ConfigError("token signing secret is not configured")
        if ttl_seconds <= 0:
            raise ConfigError("token TTL must be positive")
        self._secret = bytes(secret)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue(self, subject: str) -> str:
        """Return a signed token for subject, valid for ttl_seconds from now."""
        if not self._secret:
            raise ConfigError("token signing secret is not configured")
        now = self._now()
        claims = {
            "sub": subject,
            "iat": now,
            "exp": now + self.ttl_seconds,
            "jti": secrets.token_urlsafe(16),
        }
        token = jwt.encode(claims, self._secret, algorithm=ALGORITHM)
        logger.debug("Issued session token for %s (exp=%d)", subject, claims["exp"])
        return token

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, token: str) -> str:
        """Verify token and return its subject claim."""
        return self.decode(token).subject

    def decode(self, token: str) -> TokenClaims:
        """Verify token and return all of its claims.

        Checks run in a fixed order and stop at the first failure:
        structure, algorithm, signature, claim shape, expiry.
        """
        if not isinstance(token, str) or token.count(".") != 2:
            raise MalformedToken("token is not a three-part JWS")

        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedToken(str(exc)) from exc

        alg = header.get("alg")
        if alg != ALGORITHM:
            raise UnexpectedAlgorithm(f"token signed with {alg!r}, expected {ALGORITHM}")

        try:
            payload = jws.verify(token, self._secret, algorithms=[ALGORITHM])
        except JWSError as exc:
            raise BadSignature(str(exc)) from exc

        claims = _parse_claims(payload)
        if self._now() > claims.expires_at + EXPIRY_LEEWAY_SECONDS:
            raise TokenExpired(f"token expired at {claims.expires_at}")
        return claims


def _parse_claims(payload: bytes) -> TokenClaims:
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise MalformedToken("claims are not valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedToken("claims must be a JSON object")

    subject = data.get("sub")
    expires_at = data.get("exp")
    issued_at = data.get("iat", 0)
    if not isinstance(subject, str) or not subject:
        raise MalformedToken("missing or invalid 'sub' claim")
    # bool is an int subclass; a literal true/false is not a timestamp.
    for name, value in (("exp", expires_at), ("iat", issued_at)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedToken(f"missing or invalid {name!r} claim")
    return TokenClaims(subject=subject, issued_at=issued_at, expires_at=expires_at)
