"""
Authentication Routes

Passwordless authentication with magic links:
1. Visitor submits their e-mail on the sign-in (or sign-up) page
2. A one-time link carrying a ``magic_link`` JWT is e-mailed to them
3. ``/auth/verify`` swaps that token for a ``session`` JWT cookie

The sign-in, sign-up and reset-password pages are only for signed-out
visitors. Each one goes through ``redirect_if_authenticated``, so a signed-in
user is sent to the dashboard before any form is rendered. Because there are
no passwords, "reset password" means requesting a fresh sign-in link.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Form, Request
from fastapi.responses import RedirectResponse
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from aisle.config import settings
from aisle.database import get_db
from aisle.dependencies import get_page_user
from aisle.guards import redirect_if_authenticated
from aisle.limiter import limiter
from aisle.models import User, BlacklistedEmail
from aisle.services.audit import log_action
from aisle.services.auth import create_access_token, verify_token, MAGIC_LINK_PURPOSE, SESSION_PURPOSE
from aisle.services.email import send_magic_link
from aisle.services.session import SESSION_COOKIE
from aisle.templating import templates


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _is_blacklisted(db: AsyncSession, email: str) -> bool:
    result = await db.execute(
        select(BlacklistedEmail).filter(BlacklistedEmail.email == email.lower())
    )
    return result.scalars().first() is not None


def _send_link(request: Request, email: str, new_account: bool = False):
    token = create_access_token({"sub": email}, purpose=MAGIC_LINK_PURPOSE)
    link = f"{request.base_url}auth/verify?token={token}"
    try:
        send_magic_link(email, link, new_account=new_account)
    except Exception:
        # Already logged by the email service
        raise HTTPException(
            status_code=502,
            detail="Could not send the sign-in e-mail. Please try again."
        )


@router.get("/signin")
async def signin_page(request: Request, user: User | None = Depends(get_page_user)):
    return redirect_if_authenticated(request, user, "auth/signin.html")


@router.get("/signup")
async def signup_page(request: Request, user: User | None = Depends(get_page_user)):
    return redirect_if_authenticated(request, user, "auth/signup.html")


@router.get("/reset-password")
async def reset_password_page(
    request: Request,
    token: str | None = None,
    user: User | None = Depends(get_page_user)
):
    """
    Page for members who lost access to their sign-in e-mail link.

    An expired link from an earlier e-mail may land here with ``token`` set;
    the page then explains that the link expired.
    """
    expired = bool(token) and verify_token(token, purpose=MAGIC_LINK_PURPOSE) is None
    return redirect_if_authenticated(
        request, user, "auth/reset_password.html", {"expired": expired}
    )


@router.post("/signin")
@limiter.limit("5/minute")
async def signin(
    request: Request,
    email: EmailStr = Form(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Send a magic link to an existing member.

    Raises:
        HTTPException: 403 if the address is blacklisted, 404 if there is no
                       account, 502 if the e-mail could not be sent
    """
    email = email.lower()
    if await _is_blacklisted(db, email):
        raise HTTPException(status_code=403, detail="This account has been suspended")

    result = await db.execute(select(User).filter(User.email == email))
    if result.scalars().first() is None:
        raise HTTPException(status_code=404, detail="No account found for this email. Please sign up.")

    _send_link(request, email)
    return templates.TemplateResponse(
        request, "partials/magic_link_sent.html", {"email": email}
    )


@router.post("/signup")
@limiter.limit("5/minute")
async def signup(
    request: Request,
    email: EmailStr = Form(...),
    display_name: str | None = Form(None),
    agree_terms: bool = Form(False),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an account and send its first magic link.

    Raises:
        HTTPException: 400 without terms agreement, 403 if blacklisted,
                       409 if the e-mail is taken, 502 if sending fails
    """
    if not agree_terms:
        raise HTTPException(status_code=400, detail="You must agree to the community standards")

    email = email.lower()
    if await _is_blacklisted(db, email):
        raise HTTPException(status_code=403, detail="This email cannot be used to sign up")

    result = await db.execute(select(User).filter(User.email == email))
    if result.scalars().first() is not None:
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    user = User(email=email, display_name=(display_name or "").strip() or None)
    db.add(user)
    await log_action(db, "user_created", email)
    await db.commit()
    logger.info(f"New account created: {email}")

    _send_link(request, email, new_account=True)
    return templates.TemplateResponse(
        request, "partials/magic_link_sent.html", {"email": email}
    )


@router.get("/verify")
async def verify(token: str):
    """
    Exchange a magic link token for a session cookie.

    Raises:
        HTTPException: 400 if the token is invalid, expired or not a magic link
    """
    payload = verify_token(token, purpose=MAGIC_LINK_PURPOSE)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=400, detail="Invalid or expired sign-in link")

    session_token = create_access_token({"sub": payload["sub"]}, purpose=SESSION_PURPOSE)

    # 303 so the browser follows up with a GET
    response = RedirectResponse(url=settings.DASHBOARD_URL, status_code=303)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=f"Bearer {session_token}",
        httponly=True,
        max_age=settings.SESSION_MAX_AGE,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production"
    )
    return response


@router.get("/signout")
async def signout():
    response = RedirectResponse(url="/auth/signin", status_code=303)
    response.delete_cookie(SESSION_COOKIE)
    return response
