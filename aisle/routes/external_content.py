"""
External Content API

GET /api/external-content

Single-target mode, one of:
- ?actor=<handle or DID>: author feed, moderated, with the profile URL
  (a leading "@" is dropped before the provider is called)
- ?uri=<AT-URI>: post thread, moderated, with the post URL

Aggregate mode (no target):
- returns approved content already imported, newest first
- ?refresh=true (or an empty store) walks the configured handles first

Provider and moderation failures are raised as ``ContentIngestionError``
subclasses and rendered by the handler in ``aisle.main``.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from aisle.database import get_db
from aisle.dependencies import get_current_user
from aisle.limiter import limiter
from aisle.models import User
from aisle.services.bluesky import normalize_actor
from aisle.services.ingestion import ingest_target, get_cached_content, refresh_external_content


router = APIRouter(prefix="/api/external-content", tags=["external-content"])


@router.get("")
@limiter.limit("30/minute")
async def external_content(
    request: Request,
    actor: str | None = Query(None),
    uri: str | None = Query(None),
    refresh: bool = Query(False),
    limit: int = Query(10, ge=1, le=100),
    fetch_threads: bool = Query(True, alias="fetchThreads"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if actor and uri:
        raise HTTPException(status_code=400, detail="Specify either actor or uri, not both")

    if actor is not None:
        actor = normalize_actor(actor)
        if not actor:
            raise HTTPException(status_code=400, detail="actor must be a handle or DID")

    if actor or uri:
        result = await ingest_target(actor=actor, uri=uri, limit=limit)
        return JSONResponse(content=result)

    if not refresh:
        cached = await get_cached_content(db, limit=limit)
        if cached:
            return JSONResponse(content={
                "content": cached,
                "cached": True,
                "timestamp": datetime.utcnow().isoformat(),
                "diagnostics": None,
            })

    report = await refresh_external_content(db, fetch_threads=fetch_threads)
    return JSONResponse(content={
        "content": report["content"][:limit],
        "cached": False,
        "imported": report["imported"],
        "timestamp": datetime.utcnow().isoformat(),
        "diagnostics": report["diagnostics"],
    })
