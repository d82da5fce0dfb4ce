"""
Authentication Dependencies for FastAPI Routes

The session user is always handed to route handlers through one of these
dependencies rather than looked up inside the handler:

- get_current_user: API routes that require a signed-in user (401 otherwise)
- get_optional_user: API routes that work for anonymous callers too
- get_page_user: server-rendered pages; a broken session store is treated
  as "not signed in" so the page still renders
"""

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from aisle.database import get_db
from aisle.exceptions import SessionLookupError
from aisle.models import User
from aisle.services.session import resolve_session_user


logger = logging.getLogger(__name__)


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User | None:
    """
    Return the signed-in user or None.

    Raises:
        HTTPException: 503 if the session store is unavailable
    """
    try:
        return await resolve_session_user(request, db)
    except SessionLookupError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session service unavailable"
        )


async def get_current_user(
    user: User | None = Depends(get_optional_user)
) -> User:
    """
    Require a signed-in user.

    Usage:
        @router.post("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"email": user.email}

    Raises:
        HTTPException: 401 if nobody is signed in
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user


async def get_page_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User | None:
    """
    Session user for page rendering.

    Lookup failures are logged and answered with None, so auth pages fall
    back to showing their form instead of an error page.
    """
    try:
        return await resolve_session_user(request, db)
    except SessionLookupError as e:
        logger.warning(f"Session lookup failed, rendering page as anonymous: {e}")
        return None
