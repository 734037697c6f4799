"""
auth/middleware.py -- Bearer-token identity gate as a pure function.

authenticate_request(authorization, context, tokens) -> Admission

The function takes the raw Authorization value and the current AuthContext
and returns a new context plus an admit/deny verdict. It touches no request
object and no framework state, so the FastAPI dependency in
api/dependencies.py is a thin adapter around it and tests call it directly.

Protocol:
  - missing or blank value -> denied with MissingToken
  - a leading "Bearer " (any case) is stripped; a bare token is accepted too
  - TokenService.decode() decides the rest. Its specific error is logged here
    with full detail and returned on the Admission for the caller, which must
    still answer with one uniform 401

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from auth.errors import AuthError, MissingToken, TokenError
from auth.models import TokenClaims
from auth.tokens import TokenService

logger = logging.getLogger("inventory.auth")

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class AuthContext:
    """Per-request identity annotations handed to downstream handlers."""

    client: str = "unknown"
    subject: str | None = None
    claims: TokenClaims | None = None

    @property
    def authenticated(self) -> bool:
        return self.subject is not None


@dataclass(frozen=True)
class Admission:
    admitted: bool
    context: AuthContext
    failure: AuthError | None = None


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token part of an Authorization value, or None if empty."""
    if authorization is None:
        return None
    value = authorization.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == BEARER_SCHEME:
        value = rest.strip()
    return value or None


def authenticate_request(authorization: str | None, context: AuthContext, tokens: TokenService) -> Admission:
    token = extract_bearer(authorization)
    if token is None:
        logger.info("Rejected request from %s: missing token", context.client)
        return Admission(admitted=False, context=context, failure=MissingToken("no bearer token supplied"))

    try:
        claims = tokens.decode(token)
    except TokenError as exc:
        # The reason stays in the log; callers only learn "unauthorized".
        logger.warning("Rejected token from %s: %s (%s)", context.client, exc.code, exc)
        return Admission(admitted=False, context=context, failure=exc)

    return Admission(admitted=True, context=replace(context, subject=claims.subject, claims=claims))
