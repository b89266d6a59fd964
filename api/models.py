"""
API request and response models for ThingGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in things/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Principal
from things.models import Thing

# ---------------------------------------------------------------------------
# Things
# ---------------------------------------------------------------------------


class ThingWrite(BaseModel):
    """Request body for POST /things and PUT /things/{id}.

    PUT is a full-record update: an omitted name is written as null.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, max_length=255)


class ThingResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str]

    @classmethod
    def from_thing(cls, thing: Thing) -> "ThingResponse":
        return cls(id=thing.id, name=thing.name)


class CountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str
    roles: list[str]


class MeResponse(BaseModel):
    """Identity of the current caller. Never includes credentials."""

    model_config = ConfigDict(frozen=True)

    username: str
    roles: list[str]
    authorities: list[str]

    @classmethod
    def from_principal(cls, principal: Principal) -> "MeResponse":
        return cls(
            username=principal.username,
            roles=sorted(principal.roles),
            authorities=sorted(principal.authorities),
        )


# ---------------------------------------------------------------------------
# Errors / health
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
    components: dict[str, str]
