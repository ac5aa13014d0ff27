"""
Authentication utilities: password hashing and JWT handling.

Clients send the token returned by POST /login as:
- Authorization: Bearer <token>
"""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from companion_api.errors import ForbiddenError, UnauthorizedError

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
_bearer_scheme = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET") or os.getenv("ACCESS_TOKEN_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET env var is required.")
    return secret


def _jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def _jwt_exp_minutes() -> int:
    try:
        return int(os.getenv("JWT_EXPIRES_MINUTES", "4320"))  # default: 3 days
    except ValueError:
        return 4320


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plain-text password."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plain-text password against a hash."""
    return _pwd_context.verify(password, password_hash)


# PUBLIC_INTERFACE
def create_access_token(*, user_id: uuid.UUID, email: str, expires_in: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Token contains:
      - sub: user_id (string UUID)
      - email
      - iat, exp

    The password is never part of the claims.
    """
    now = datetime.now(timezone.utc)
    exp = now + (expires_in if expires_in is not None else timedelta(minutes=_jwt_exp_minutes()))
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=_jwt_algorithm())


# PUBLIC_INTERFACE
def decode_access_token(token: str) -> Dict[str, Any]:
    """Return the verified claims of a token; ForbiddenError on bad signature or expiry."""
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[_jwt_algorithm()])
    except JWTError:
        raise ForbiddenError("Invalid access token")


# PUBLIC_INTERFACE
def verify_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Dict[str, Any]:
    """
    FastAPI dependency returning the decoded claims of the bearer token.

    Raises 401 if the token is missing, 403 if it does not verify.
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Access token missing")
    return decode_access_token(credentials.credentials)
