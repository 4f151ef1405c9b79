"""
verify.py
---------
Purpose:
    Static bearer-token guard for the admin API.

Notes:
    - The token is API_AUTH_TOKEN; an empty token leaves the guarded routes open.
    - Provides `auth_dependency` for protected routers.
"""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

_security = HTTPBearer(auto_error=False)


def verify_token(presented: str | None, expected: str) -> bool:
    if not expected:
        return True
    if not presented:
        return False
    return secrets.compare_digest(presented, expected)


def auth_dependency(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> None:
    expected = request.app.state.settings.API_AUTH_TOKEN
    presented = credentials.credentials if credentials else None
    if not verify_token(presented, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
