import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

from fastapi import HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import async_sessionmaker

from memory_bank.core import security
from memory_bank.db import session as db_session

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CurrentUser:
    """The authenticated caller. Resources are always scoped to ``id``."""

    id: str


def get_session_factory() -> async_sessionmaker:
    """Return the configured session factory.

    Services open one session per unit of work (the queue builder opens one per
    resource kind), so routes receive the factory rather than a session.
    """

    return db_session.AsyncSessionLocal


def _normalize_token_value(raw_token: Optional[str]) -> Optional[str]:
    """Strip quotes, percent-encoding and a ``Bearer`` prefix from ``raw_token``."""

    if raw_token is None:
        return None

    token = unquote(raw_token.strip().strip('"').strip("'"))
    if not token:
        return None

    match = re.match(r"^bearer[\s,:]+(.+)$", token, flags=re.IGNORECASE)
    if match:
        token = match.group(1)

    token = token.strip()
    return token or None


def _decode_user_from_token(token: Optional[str]) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )

    token = _normalize_token_value(token)
    if not token:
        log.warning("Authentication failed: no token supplied.")
        raise credentials_exception

    try:
        payload = security.decode_access_token(token)
    except ExpiredSignatureError:
        log.warning("Authentication failed: token expired.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token_expired")
    except JWTError:
        log.warning("Authentication failed: token invalid or malformed.")
        raise credentials_exception

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id.strip():
        log.warning("Authentication failed: token has no 'sub' claim.")
        raise credentials_exception

    return CurrentUser(id=user_id.strip())


def get_current_user(request: Request) -> CurrentUser:
    token_sources = (
        request.headers.get("Authorization"),
        request.cookies.get("access_token"),
        request.query_params.get("access_token"),
    )

    last_unauthorized_error: HTTPException | None = None

    for candidate in token_sources:
        token = _normalize_token_value(candidate)
        if not token:
            continue

        try:
            return _decode_user_from_token(token)
        except HTTPException as exc:
            last_unauthorized_error = exc

    if last_unauthorized_error is not None:
        raise last_unauthorized_error

    return _decode_user_from_token(None)
