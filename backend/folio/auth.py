"""
Session verification for /api/me routes.

Sessions are issued by the external auth service; this module only
verifies the signed token (cookie or Bearer header) and extracts the
user id from its "sub" claim.
"""

from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from folio.config import get_settings

settings = get_settings()

ALGORITHM = "HS256"
COOKIE_NAME = "session_token"


def verify_session_token(token: str) -> Optional[str]:
    """Return the user id for a valid token, None otherwise."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        return payload.get("sub")
    except JWTError:
        return None


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get(COOKIE_NAME)


async def get_current_user_id(request: Request) -> str:
    token = _token_from_request(request)
    user_id = verify_session_token(token) if token else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id
