from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from snippy_backend.config import settings
from snippy_backend.identity import verify_identity_token

_bearer = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    bearer_token: str | None = None
    raw_token = creds.credentials if creds is not None else None
    if raw_token and raw_token.strip():
        bearer_token = raw_token.strip()

    # Bearer wins over the session cookie.
    token = bearer_token or request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing token")

    user_id = verify_identity_token(token)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token")

    # Stash for the request log line.
    request.state.auth_user_id = user_id
    return user_id
