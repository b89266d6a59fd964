"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two auth methods are checked in priority order:
  1. Authorization: Bearer <token> -- JWT issued by POST /api/v1/auth/login.
  2. Authorization: Basic <b64>    -- username/password checked against the
                                      identity provider on every request.

Both converge on a Principal.

try_get_current_principal() is the soft variant (returns None on failure).
get_current_principal() wraps it and raises HTTP 401 if unauthenticated.

Authorization (roles) is NOT decided here. Routes install the principal with
auth.context.authenticated() and let the repository's guard decide, so the
same rule applies whether a call comes over HTTP or from Python.

Layer rule: no imports from things/. May import from fastapi because this
module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from auth.identity import InMemoryIdentityProvider
from auth.models import Principal
from auth.tokens import decode_access_token

# auto_error=False: a missing or Bearer header is not an error at this stage.
_basic = HTTPBasic(auto_error=False)


def try_get_current_principal(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> Principal | None:
    """Attempt to authenticate the request via Bearer JWT or HTTP Basic.

    Returns the Principal on success, None on any failure. Never raises.

    A valid token whose subject is no longer known to the identity provider
    is rejected, and the provider's current roles win over the token's.
    """
    provider: InMemoryIdentityProvider = request.app.state.identity_provider

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        payload = decode_access_token(auth_header[7:])
        if payload:
            return provider.get(payload["sub"])
        return None

    if credentials is not None:
        return provider.authenticate(credentials.username, credentials.password)

    return None


def get_current_principal(principal: Principal | None = Depends(try_get_current_principal)) -> Principal:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer, Basic"},
        )
    return principal
