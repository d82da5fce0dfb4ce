"""
Main Application Entry Point

Sets up the FastAPI application:
- Logging, with debug output in development
- Database tables created on startup
- Static files and route registration
- Rate limiting and the ingestion error handler
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from aisle.config import settings
from aisle.database import engine
from aisle.exceptions import ContentIngestionError
from aisle.limiter import limiter
from aisle.models import Base
from aisle.routes import auth, pages, external_content


logging.basicConfig(
    level=logging.DEBUG if settings.ENVIRONMENT == "development" else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create database tables on startup.

    Schema changes beyond new tables are not handled here.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")

    yield


app = FastAPI(title="Bridging the Aisle", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(external_content.router)


@app.exception_handler(ContentIngestionError)
async def content_ingestion_error_handler(request: Request, exc: ContentIngestionError):
    """
    Render provider and moderation failures as distinguishable JSON errors.

    ``kind`` tells the failure classes apart; ``content`` is always empty so
    a failed ingestion never looks like a partial success.
    """
    logger.error(f"External content error ({exc.kind}): {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "kind": exc.kind,
            "details": exc.details,
            "timestamp": datetime.utcnow().isoformat(),
            "content": [],
            "cached": False,
        },
    )
