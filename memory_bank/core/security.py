import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from jose import jwt

from memory_bank.core.config import settings

# --- Token configuration ---
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)


def create_access_token(subject: Union[str, Any], expires_delta: timedelta = None) -> str:
    """Create a signed JWT access token for ``subject``."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> dict:
    """Decode ``token`` and return its claims.

    Raises ``jose.JWTError`` (or ``ExpiredSignatureError``) when the token is
    invalid; callers decide how to surface it.
    """
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
