"""
api/routes/v1/auth.py -- Signup, login and session introspection endpoints.

Routes:
  POST /api/v1/auth/signup   -- create an account; 201 with a session token
  POST /api/v1/auth/login    -- password login; 200 with a session token
  GET  /api/v1/auth/me       -- claims of the presented token (requires auth)

Security:
  Login returns the same 401 "bad_credentials" body for an unknown username
  and a wrong password. AuthService equalizes timing between the two.
  Token and credential responses carry Cache-Control: no-store.
  AuthTimeout is not caught here: the handler in api/main.py maps it to 503.
  Admission control (429) happens before these handlers run (api/pipeline.py).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_auth_service, get_current_subject
from api.models import LoginRequest, LoginResponse, MeResponse, SignupRequest, SignupResponse
from auth.errors import InvalidCredentials, UsernameTaken
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/signup: public
# - POST /api/v1/auth/login:  public
# - GET  /api/v1/auth/me:     requires auth (get_current_subject)
router = APIRouter()


@router.post("/auth/signup", response_model=SignupResponse, status_code=201)
def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Register a new account and open a session for it immediately."""
    try:
        result = service.signup(body.username, body.password)
    except UsernameTaken as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "username_taken", "message": "That username is already registered."},
        ) from exc

    resp = JSONResponse(
        status_code=201,
        content=SignupResponse(
            username=result.username,
            token=result.token,
            expires_in=service.tokens.ttl_seconds,
            session_established=result.session_established,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/login", response_model=LoginResponse)
def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Authenticate with username and password and return a fresh token."""
    try:
        token = service.login(body.username, body.password)
    except InvalidCredentials:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=service.tokens.ttl_seconds,
            username=body.username,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, subject: str = Depends(get_current_subject)) -> MeResponse:
    """Return the identity and lifetime of the presented session token."""
    claims = request.state.auth.claims
    return MeResponse(username=subject, issued_at=claims.issued_at, expires_at=claims.expires_at)
