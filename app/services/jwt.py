"""
JWT helpers.

Users are issued tokens by an external auth service sharing JWT_SECRET_KEY;
this API only verifies them. ``create_access_token`` exists for local runs
and tests.
"""
from datetime import datetime, timedelta, timezone

import jwt

from app.config import settings


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_user_id(token: str) -> int | None:
    """
    Verify a bearer token and return the user id in its ``sub`` claim.

    Returns None for an invalid or expired token, or a missing or
    non-integer subject.
    """
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.PyJWTError:
        return None

    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
