"""
Page Routes

- GET /: sends visitors to the dashboard or the sign-in page
- GET /dashboard: signed-in home, listing imported civic content
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from aisle.config import settings
from aisle.database import get_db
from aisle.dependencies import get_page_user
from aisle.guards import redirect_if_anonymous
from aisle.models import User
from aisle.services.ingestion import get_cached_content
from aisle.templating import templates


router = APIRouter(tags=["pages"])

DASHBOARD_CONTENT_LIMIT = 20


@router.get("/")
async def root(user: User | None = Depends(get_page_user)):
    if user is not None:
        return RedirectResponse(url=settings.DASHBOARD_URL, status_code=303)
    return RedirectResponse(url="/auth/signin", status_code=303)


@router.get("/dashboard")
async def dashboard(
    request: Request,
    user: User | None = Depends(get_page_user),
    db: AsyncSession = Depends(get_db)
):
    redirect = redirect_if_anonymous(user)
    if redirect is not None:
        return redirect

    content = await get_cached_content(db, limit=DASHBOARD_CONTENT_LIMIT)
    return templates.TemplateResponse(request, "dashboard.html", {
        "user": user,
        "content": content,
    })
