"""
Pytest configuration and shared fixtures.

Settings are read from the environment when ``aisle.config`` is imported,
so the test environment is set up before any application import.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RESEND_API_KEY", "re_test")
os.environ.setdefault("FROM_EMAIL", "noreply@example.com")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("RATELIMIT_ENABLED", "false")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("BLUESKY_HANDLES", "npr.org,politico.com")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aisle.database import get_db
from aisle.main import app
from aisle.models import Base, User
from aisle.services.auth import create_access_token


CIVIC_TEXT = "The senate will vote on the new budget bill this week after a long committee hearing."
UNCIVIL_TEXT = "The senator is an idiot and the whole budget bill is garbage for voters everywhere."
HOBBY_TEXT = "My dog loves the park on sunny afternoons, best walk of the week for sure."


def make_post(text, rkey="3kabc", handle="npr.org", did="did:plc:npr", labels=None, author_labels=None):
    """Post view shaped like app.bsky.feed.defs#postView."""
    return {
        "uri": f"at://{did}/app.bsky.feed.post/{rkey}",
        "cid": f"bafy{rkey}",
        "author": {
            "did": did,
            "handle": handle,
            "displayName": handle.split(".")[0].upper(),
            "labels": [{"val": v} for v in (author_labels or [])],
        },
        "record": {
            "$type": "app.bsky.feed.post",
            "text": text,
            "createdAt": "2026-10-01T12:00:00.000Z",
        },
        "labels": [{"val": v} for v in (labels or [])],
    }


def make_feed(*posts, cursor="next-page"):
    return {"feed": [{"post": post} for post in posts], "cursor": cursor}


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def member(db):
    user = User(email="ada@example.com", display_name="Ada")
    db.add(user)
    await db.commit()
    return user


def session_cookie(email):
    token = create_access_token({"sub": email})
    return f"access_token=Bearer {token}"


@pytest_asyncio.fixture
async def auth_client(client, member):
    client.headers["Cookie"] = session_cookie(member.email)
    return client
