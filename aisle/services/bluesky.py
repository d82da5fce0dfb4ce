"""
Bluesky Public API Client

Unauthenticated, read-only access to Bluesky through the public AppView
host (https://public.api.bsky.app). Used endpoints:

- app.bsky.feed.getAuthorFeed: recent posts of a handle or DID
- app.bsky.feed.getPostThread: a post with its parent and replies

Responses are cached in Redis with a per-call TTL so repeated ingestion runs
do not hammer the AppView. The cache is best effort: if Redis is down the
request goes straight to Bluesky.

Reference: https://docs.bsky.app/docs/api/app-bsky-feed-get-author-feed
"""

import asyncio
import json
import logging

import redis.asyncio as redis
import requests
from redis.exceptions import RedisError

from aisle.config import settings
from aisle.exceptions import ProviderFetchError, ProviderUnavailableError


logger = logging.getLogger(__name__)

WEB_HOST = "https://bsky.app"
CACHE_PREFIX = "bsky:"

redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True
)


async def _get_cached(key: str) -> dict | None:
    try:
        raw = await redis_client.get(CACHE_PREFIX + key)
    except RedisError as e:
        logger.warning(f"Bluesky cache read failed for {key}: {e}")
        return None
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning(f"Ignoring corrupt Bluesky cache entry {key}: {e}")
        return None


async def _set_cached(key: str, data: dict, ttl_seconds: int):
    try:
        await redis_client.setex(CACHE_PREFIX + key, ttl_seconds, json.dumps(data))
    except RedisError as e:
        logger.warning(f"Bluesky cache write failed for {key}: {e}")


async def _xrpc_get(method: str, params: dict) -> dict:
    """
    Call an XRPC query method on the public AppView.

    Raises:
        ProviderUnavailableError: the host could not be reached
        ProviderFetchError: the host answered with a non-2xx status
    """
    url = f"{settings.BLUESKY_PUBLIC_API_HOST}/xrpc/{method}"

    def _get_sync():
        return requests.get(
            url,
            params=params,
            headers={"Accept": "application/json"},
            timeout=settings.BLUESKY_TIMEOUT,
        )

    try:
        # requests is blocking; keep it off the event loop
        response = await asyncio.to_thread(_get_sync)
    except requests.RequestException as e:
        raise ProviderUnavailableError(
            f"Could not connect to Bluesky: {e}"
        ) from e

    if not response.ok:
        raise ProviderFetchError(
            f"HTTP {response.status_code}: {response.text}",
            upstream_status=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise ProviderFetchError(f"Invalid JSON from {method}: {e}") from e


async def get_author_feed(
    actor: str,
    limit: int = 30,
    cursor: str | None = None,
    cache_ttl: int = 120
) -> dict:
    """
    Fetch the author feed of ``actor``.

    Args:
        actor: Handle (e.g. "npr.org") or DID
        limit: Number of posts, 1-100
        cursor: Pagination cursor from a previous response
        cache_ttl: Seconds to keep the response cached

    Returns:
        {"feed": [{"post": {...}}, ...], "cursor": "..."}
    """
    cache_key = f"author-feed:{actor}:{limit}:{cursor or 'start'}"
    cached = await _get_cached(cache_key)
    if cached is not None:
        logger.debug(f"Cache hit for author feed: {actor}")
        return cached

    params = {"actor": actor, "limit": limit}
    if cursor:
        params["cursor"] = cursor

    logger.info(f"Fetching author feed: {actor}")
    try:
        data = await _xrpc_get("app.bsky.feed.getAuthorFeed", params)
    except ProviderFetchError as e:
        logger.error(f"Failed to fetch author feed for {actor}: {e}")
        raise

    data.setdefault("feed", [])
    await _set_cached(cache_key, data, cache_ttl)
    logger.info(f"Fetched {len(data['feed'])} posts from {actor}")
    return data


async def get_post_thread(
    uri: str,
    depth: int = 2,
    parent_height: int = 1,
    cache_ttl: int = 600
) -> dict:
    """
    Fetch the thread around the post at ``uri``.

    Args:
        uri: AT-URI, at://did:plc:xxx/app.bsky.feed.post/yyy
        depth: Levels of replies to include
        parent_height: Levels of parents to include
        cache_ttl: Seconds to keep the response cached

    Returns:
        {"thread": {"post": {...}, "parent": {...}, "replies": [...]}}
    """
    cache_key = f"thread:{uri}:{depth}:{parent_height}"
    cached = await _get_cached(cache_key)
    if cached is not None:
        logger.debug(f"Cache hit for thread: {uri}")
        return cached

    logger.info(f"Fetching thread: {uri}")
    try:
        data = await _xrpc_get("app.bsky.feed.getPostThread", {
            "uri": uri,
            "depth": depth,
            "parentHeight": parent_height,
        })
    except ProviderFetchError as e:
        logger.error(f"Failed to fetch thread for {uri}: {e}")
        raise

    await _set_cached(cache_key, data, cache_ttl)
    return data


def extract_rkey(uri: str) -> str:
    """
    Record key of an AT-URI.

    >>> extract_rkey("at://did:plc:abc/app.bsky.feed.post/3kxyz")
    '3kxyz'
    """
    return uri.rstrip("/").split("/")[-1]


def generate_web_url(post: dict) -> str:
    """
    bsky.app link for a post; the author's handle is preferred over the DID.
    """
    author = post.get("author") or {}
    identifier = author.get("handle") or author.get("did")
    return f"{WEB_HOST}/profile/{identifier}/post/{extract_rkey(post['uri'])}"


def normalize_actor(actor: str) -> str:
    """Handle or DID as the AppView expects it: "@npr.org " -> "npr.org"."""
    return actor.strip().lstrip("@")


def generate_profile_url(actor: str) -> str:
    return f"{WEB_HOST}/profile/{normalize_actor(actor)}"
