"""
api/routes/v1/users.py -- Public user statistics.

Routes:
  GET /api/v1/users/count -- number of registered accounts

Public on purpose: the login page uses it to decide whether to show the
signup form first. It reveals a count, never a username.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_auth_service
from api.models import UserCountResponse
from auth.service import AuthService

router = APIRouter()


@router.get("/users/count", response_model=UserCountResponse)
def user_count(service: AuthService = Depends(get_auth_service)) -> UserCountResponse:
    return UserCountResponse(users=service.user_count())
