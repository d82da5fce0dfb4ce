"""
JWT Token Service

Two kinds of token are issued, told apart by the ``purpose`` claim:

- ``magic_link``: short-lived, embedded in the sign-in e-mail
- ``session``: stored in the ``access_token`` cookie after the link is used

A magic link token is never accepted as a session and vice versa.
"""

from datetime import datetime, timedelta
from jose import jwt, JWTError
from aisle.config import settings


ALGORITHM = "HS256"

MAGIC_LINK_PURPOSE = "magic_link"
SESSION_PURPOSE = "session"

MAGIC_LINK_TTL = timedelta(minutes=15)


def create_access_token(
    data: dict,
    purpose: str = SESSION_PURPOSE,
    expires_delta: timedelta | None = None
) -> str:
    """
    Sign ``data`` into a JWT for the given purpose.

    Args:
        data: Payload, typically {"sub": email}
        purpose: MAGIC_LINK_PURPOSE or SESSION_PURPOSE
        expires_delta: Lifetime; defaults to 15 minutes for magic links and
                       SESSION_MAX_AGE for sessions

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()

    if expires_delta is None:
        if purpose == MAGIC_LINK_PURPOSE:
            expires_delta = MAGIC_LINK_TTL
        else:
            expires_delta = timedelta(seconds=settings.SESSION_MAX_AGE)

    to_encode.update({
        "exp": datetime.utcnow() + expires_delta,
        "purpose": purpose,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str, purpose: str = SESSION_PURPOSE) -> dict | None:
    """
    Decode ``token`` and check it was issued for ``purpose``.

    Returns:
        The payload, or None if the signature, expiry or purpose is wrong
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    if payload.get("purpose") != purpose:
        return None
    return payload
