"""
api/dependencies.py -- FastAPI Depends() helpers around the auth core.

get_current_subject() adapts auth.middleware.authenticate_request() to a
FastAPI request: it reads the Authorization header, runs the pure identity
gate, binds the resolved subject onto request.state and returns it.

Every rejection is the same 401 body. Which check failed (missing token,
malformed, wrong algorithm, bad signature, expired) is only written to the
inventory.auth log by the gate itself.

Usage:
    @router.get("/protected")
    def route(subject: str = Depends(get_current_subject)): ...
"""

from __future__ import annotations

from fastapi import HTTPException, Request
from slowapi.util import get_remote_address

from auth.middleware import AuthContext, authenticate_request
from auth.service import AuthService
from auth.tokens import TokenService

UNAUTHORIZED_DETAIL = {"code": "unauthorized", "message": "Authentication required."}


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def request_context(request: Request) -> AuthContext:
    """Return the AuthContext bound by the admission pipeline, or a fresh one."""
    context = getattr(request.state, "auth", None)
    if context is None:
        context = AuthContext(client=client_key(request))
    return context


def client_key(request: Request) -> str:
    """Rate-limit identity of the caller: the remote address, keyed the way slowapi keys it."""
    return get_remote_address(request)


def get_current_subject(request: Request) -> str:
    """Require a valid bearer token. Raises HTTP 401 otherwise."""
    admission = authenticate_request(
        request.headers.get("Authorization"),
        request_context(request),
        get_token_service(request),
    )
    if not admission.admitted:
        raise HTTPException(
            status_code=401,
            detail=UNAUTHORIZED_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.auth = admission.context
    request.state.subject = admission.context.subject
    return admission.context.subject
