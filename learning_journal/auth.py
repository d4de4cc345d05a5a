# auth.py
"""
Session-token checks for requests coming from the identity provider's clients.

Sign-in itself is hosted by the provider; every request carries the provider's
signed session JWT, either as a bearer token or in the `__session` cookie.
The user id is the token's `sub` claim.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import Cookie, Header
from jose import JWTError, jwt

from learning_journal.errors import AuthError

load_dotenv()

# PEM public key (RS256) or shared secret (HS256)
AUTH_JWT_KEY = os.getenv("AUTH_JWT_KEY", "").replace("\\n", "\n")
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "RS256")


def decode_session_token(token: str) -> Optional[str]:
    """Returns the user id in a valid token, or None if invalid/expired."""
    if not AUTH_JWT_KEY:
        return None
    try:
        payload = jwt.decode(
            token,
            AUTH_JWT_KEY,
            algorithms=[AUTH_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except (JWTError, ValueError, TypeError):
        return None
    return payload.get("sub") or None


def _token_from(authorization: Optional[str], session_cookie: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return session_cookie


def optional_user(
    authorization: Optional[str] = Header(default=None),
    session: Optional[str] = Cookie(default=None, alias="__session"),
) -> Optional[str]:
    token = _token_from(authorization, session)
    return decode_session_token(token) if token else None


def require_user(
    authorization: Optional[str] = Header(default=None),
    session: Optional[str] = Cookie(default=None, alias="__session"),
) -> str:
    user_id = optional_user(authorization, session)
    if not user_id:
        raise AuthError("User not authenticated")
    return user_id
