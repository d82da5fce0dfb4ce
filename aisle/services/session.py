"""
Session Resolution

Turns the ``access_token`` cookie of a request into a ``User``.

An absent, malformed, expired or unknown token yields ``None``. A failure of
the user store itself raises ``SessionLookupError`` so callers can decide
whether that means "anonymous" (pages) or "try again later" (API).
"""

import asyncio
import logging

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from aisle.config import settings
from aisle.exceptions import SessionLookupError
from aisle.models import User
from aisle.services.auth import verify_token, SESSION_PURPOSE


logger = logging.getLogger(__name__)

SESSION_COOKIE = "access_token"


def session_email(request: Request) -> str | None:
    """
    Extract the subject e-mail from the session cookie, if the token is valid.

    The cookie holds "Bearer <jwt>" (OAuth 2.0 style).
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None

    scheme, _, param = token.partition(" ")
    if scheme.lower() != "bearer" or not param:
        return None

    payload = verify_token(param, purpose=SESSION_PURPOSE)
    if not payload:
        return None

    return payload.get("sub") or None


def is_admin_email(email: str) -> bool:
    super_users = [e.strip() for e in settings.SUPER_USERS.split(",") if e.strip()]
    return email in super_users


async def resolve_session_user(request: Request, db: AsyncSession) -> User | None:
    """
    Return the signed-in user for this request, or None.

    Raises:
        SessionLookupError: if the user table could not be queried (database
                            error, connection refused or timed out)
    """
    email = session_email(request)
    if not email:
        return None

    try:
        result = await db.execute(select(User).filter(User.email == email))
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
        # Socket errors from the driver (refused, unreachable) are not wrapped by SQLAlchemy
        logger.error(f"Session lookup failed for {email}: {e}")
        raise SessionLookupError(str(e)) from e

    user = result.scalars().first()
    if user is None:
        # Token is valid but the account was removed
        return None

    user.is_admin = is_admin_email(user.email)
    return user
