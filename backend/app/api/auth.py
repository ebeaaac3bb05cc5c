# backend/app/api/auth.py
"""Bearer tokens.

Sign-in happens with the hosted auth provider; this API only verifies the
session JWT it issues (``sub`` is the user id, ``email`` the login email).
``create_access_token`` mints compatible tokens for tests and local tooling.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi.security import OAuth2PasswordBearer
from jose import jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the token claims; raises ``jose.JWTError`` when invalid."""
    # Hosted-provider tokens carry an audience claim we do not pin.
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_aud": False})
