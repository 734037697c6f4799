"""
API request and response models for the inventory REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
inventory/models.py, which own the internal domain representation. Route
handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inventory.models import Item

# bcrypt ignores everything past 72 bytes; refuse such passwords up front so
# the user is never silently authenticated by a prefix.
_MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body shared by POST /auth/signup and POST /auth/login."""

    model_config = ConfigDict(str_strip_whitespace=False)

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_BYTES)

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("username must not be blank")
        return value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > _MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {_MAX_PASSWORD_BYTES} bytes")
        return value


class SignupRequest(CredentialsRequest):
    pass


class LoginRequest(CredentialsRequest):
    pass


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class SignupResponse(BaseModel):
    """Response for POST /auth/signup.

    token is null when the account was created but no session could be
    issued; session_established is then false and the client should log in.
    """

    username: str
    token: Optional[str]
    token_type: str = "bearer"
    expires_in: int
    session_established: bool


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str


class MeResponse(BaseModel):
    username: str
    issued_at: int
    expires_at: int


class UserCountResponse(BaseModel):
    users: int


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class ItemIn(BaseModel):
    """Request body for creating or replacing an inventory item."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=2000)
    price: float = Field(ge=0)

    def to_domain(self) -> Item:
        return Item(name=self.name, description=self.description, price=self.price)


class ItemOut(BaseModel):
    id: int
    name: str
    description: str
    price: float

    @classmethod
    def from_domain(cls, item: Item) -> "ItemOut":
        return cls(id=item.id, name=item.name, description=item.description, price=item.price)


class DeleteManyRequest(BaseModel):
    ids: list[int] = Field(min_length=1, max_length=500)


class DeleteManyResponse(BaseModel):
    deleted: int
