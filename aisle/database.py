"""
Database Engine and Session Dependency

Builds the async SQLAlchemy engine from ``settings.DATABASE_URL`` and exposes
``get_db`` for FastAPI routes. Production runs on PostgreSQL through asyncpg;
the test suite points the same code at SQLite through aiosqlite.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from aisle.config import settings


engine = create_async_engine(settings.DATABASE_URL, echo=False)


# expire_on_commit=False keeps ORM attributes readable after commit; with
# async sessions a refresh cannot happen implicitly on attribute access
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db():
    """
    Yield a database session for the duration of one request.

    Usage:
        @router.get("/endpoint")
        async def route(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(User))
    """
    async with AsyncSessionLocal() as session:
        yield session
