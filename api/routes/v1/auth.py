"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; returns a Bearer JWT
  GET  /api/v1/auth/me      -- current principal (requires auth)

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  InMemoryIdentityProvider.authenticate() provides timing equalization -- use
  it, never inline get() + verify_password().
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, MeResponse
from auth.dependencies import get_current_principal
from auth.identity import InMemoryIdentityProvider
from auth.models import Principal
from auth.tokens import create_access_token
from core.config import get_settings

router = APIRouter()


@limiter.limit(get_settings().login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and return an access token.

    Returns the same error for an unknown username and a wrong password
    ("bad_credentials") so the response does not reveal which one it was.
    """
    provider: InMemoryIdentityProvider = request.app.state.identity_provider
    principal = provider.authenticate(body.username, body.password)
    if principal is None:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="bad_credentials", message="Invalid username or password.")
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    expires_in = get_settings().token_expire_seconds
    token = create_access_token(principal.username, principal.roles, expire_seconds=expires_in)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=expires_in,
            username=principal.username,
            roles=sorted(principal.roles),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> MeResponse:
    """Return identity information for the current caller."""
    return MeResponse.from_principal(principal)
