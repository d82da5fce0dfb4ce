"""
External Content Ingestion

Two ways of pulling Bluesky content into the platform:

1. Single target (``ingest_target``): one author feed or one post thread is
   fetched, every post is moderated and the result is returned to the caller
   together with the canonical bsky.app URL. Nothing is stored.

2. Aggregate refresh (``refresh_external_content``): the configured civic
   and news handles are walked one after another; posts that pass the civic
   filter are stored as ``ExternalContent`` and the ``FeedState`` totals are
   updated. A failing handle is recorded and skipped.

In both modes the order is fetch, then moderate, then build URLs. A provider
failure in single-target mode aborts before any moderation happens. A
moderation failure always aborts, so nothing is approved by a broken filter.
"""

import logging
import re
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc

from aisle.config import settings
from aisle.exceptions import ProviderFetchError, ModerationServiceError
from aisle.models import ExternalContent, FeedState
from aisle.services import bluesky, civic_filter
from aisle.services.audit import log_action, SYSTEM_ACTOR
from aisle.services.moderation import ModerationVerdict, format_flagged_words


logger = logging.getLogger(__name__)

PLATFORM = "bluesky"
FEED_NAME = "civic-timeline"

AUTHOR_FEED_LIMIT = 30  # Posts per handle per refresh
CACHE_TTL_FEED = 120  # seconds
CACHE_TTL_THREAD = 600  # seconds
THREAD_DEPTH = 2
THREAD_PARENT_HEIGHT = 1

FRACTION_PATTERN = re.compile(r"\.(\d+)")


def configured_handles() -> list[str]:
    return [h.strip() for h in settings.BLUESKY_HANDLES.split(",") if h.strip()]


def post_text(post: dict) -> str:
    return (post.get("record") or {}).get("text") or ""


def moderate_post(post: dict) -> ModerationVerdict:
    """
    Run the civic filter over one provider post.

    Raises:
        ModerationServiceError: if the filter itself fails
    """
    try:
        labels = civic_filter.extract_safety_labels(post)
        return civic_filter.review_post(post_text(post), labels)
    except Exception as e:
        logger.error(f"Moderation failed for {post.get('uri')}: {e}")
        raise ModerationServiceError(
            f"Moderation failed for {post.get('uri')}: {e}"
        ) from e


def format_post(post: dict, verdict: ModerationVerdict) -> dict:
    author = post.get("author") or {}
    return {
        "uri": post.get("uri"),
        "cid": post.get("cid"),
        "author": {
            "did": author.get("did"),
            "handle": author.get("handle"),
            "display_name": author.get("displayName") or author.get("handle"),
        },
        "text": post_text(post),
        "created_at": (post.get("record") or {}).get("createdAt"),
        "web_url": bluesky.generate_web_url(post),
        "verdict": verdict.model_dump(),
    }


def _parse_created_at(value: str) -> datetime:
    # Bluesky timestamps are ISO 8601 with a trailing "Z"; columns hold naive UTC.
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits.
    value = value.replace("Z", "+00:00")
    value = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


async def ingest_target(
    actor: str | None = None,
    uri: str | None = None,
    limit: int = AUTHOR_FEED_LIMIT
) -> dict:
    """
    Fetch, moderate and describe a single feed or thread.

    Exactly one of ``actor`` (feed mode) or ``uri`` (thread mode) is given.

    Args:
        actor: Handle or DID whose author feed is fetched
        uri: AT-URI of the post whose thread is fetched
        limit: Feed size in feed mode

    Returns:
        Dict with the mode, the identifier, the canonical ``web_url``, each
        post with its verdict, allowed/flagged counts and the raw provider
        response under ``data``

    Raises:
        ValueError: if neither or both identifiers are given
        ProviderFetchError: if the provider call fails (moderation is skipped)
        ModerationServiceError: if moderation fails
    """
    if bool(actor) == bool(uri):
        raise ValueError("Exactly one of actor or uri is required")

    if actor:
        data = await bluesky.get_author_feed(actor, limit=limit, cache_ttl=CACHE_TTL_FEED)
        posts = [item["post"] for item in data.get("feed", []) if item.get("post")]
        web_url = bluesky.generate_profile_url(actor)
    else:
        data = await bluesky.get_post_thread(
            uri,
            depth=THREAD_DEPTH,
            parent_height=THREAD_PARENT_HEIGHT,
            cache_ttl=CACHE_TTL_THREAD,
        )
        thread = data.get("thread") or {}
        root = thread.get("post")
        if not root:
            # notFoundPost / blockedPost carry no "post"
            raise ProviderFetchError(
                f"Thread not available: {thread.get('$type', 'unknown')}",
                upstream_status=404,
            )
        posts = [root] + [
            reply["post"] for reply in thread.get("replies") or [] if reply.get("post")
        ]
        web_url = bluesky.generate_web_url(root)

    formatted = []
    flagged = 0
    for post in posts:
        verdict = moderate_post(post)
        if not verdict.allowed:
            flagged += 1
        formatted.append(format_post(post, verdict))

    result = {
        "mode": "feed" if actor else "thread",
        "web_url": web_url,
        "posts": formatted,
        "moderation": {
            "allowed": len(formatted) - flagged,
            "flagged": flagged,
        },
        "data": data,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if actor:
        result["actor"] = actor
        result["cursor"] = data.get("cursor")
    else:
        result["uri"] = uri
    return result


async def get_cached_content(db: AsyncSession, limit: int = 10) -> list[dict]:
    """Most recently imported approved posts, newest first."""
    query = (
        select(ExternalContent)
        .filter(ExternalContent.platform == PLATFORM, ExternalContent.is_approved == True)
        .order_by(desc(ExternalContent.imported_at), desc(ExternalContent.id))
        .limit(limit)
    )
    result = await db.execute(query)
    return [row.to_dict() for row in result.scalars().all()]


async def update_feed_state(
    db: AsyncSession,
    cursor: str | None,
    last_post_uri: str | None,
    fetched_count: int,
    approved_count: int,
    error: str | None = None
) -> FeedState:
    """
    Create or update the FeedState row for FEED_NAME.

    Not committed; the caller commits together with the imported posts.
    """
    result = await db.execute(select(FeedState).filter(FeedState.feed_name == FEED_NAME))
    state = result.scalars().first()
    if state is None:
        state = FeedState(feed_name=FEED_NAME, is_active=True)
        db.add(state)

    state.cursor = cursor
    if last_post_uri:
        state.last_post_uri = last_post_uri
    state.last_fetched_at = datetime.utcnow()
    state.total_fetched = (state.total_fetched or 0) + fetched_count
    state.total_approved = (state.total_approved or 0) + approved_count
    state.error_count = (state.error_count or 0) + 1 if error else 0
    state.last_error = error
    return state


async def _already_imported(db: AsyncSession, uri: str) -> bool:
    result = await db.execute(
        select(ExternalContent.id).filter(
            ExternalContent.platform == PLATFORM,
            ExternalContent.external_id == uri,
        )
    )
    return result.first() is not None


async def refresh_external_content(
    db: AsyncSession,
    handles: list[str] | None = None,
    fetch_threads: bool = True
) -> dict:
    """
    Walk the configured handles and import posts that pass the civic filter.

    Args:
        db: Database session; committed once at the end
        handles: Handles to fetch; defaults to ``configured_handles()``
        fetch_threads: Also fetch thread context for approved posts

    Returns:
        {"content": [...], "imported": n, "diagnostics": {...}}

    Raises:
        ModerationServiceError: if moderation fails for any post
    """
    handles = handles if handles is not None else configured_handles()

    total_fetched = 0
    filter_stats = {
        "total_posts": 0,
        "safety_issues": 0,
        "already_exists": 0,
        "hobby_lifestyle": 0,
        "uncivil_language": 0,
        "not_political_civic": 0,
        "too_short": 0,
        "low_civility_score": 0,
        "approved": 0,
        "threads_fetched": 0,
        "threads_skipped": 0,
    }
    imported: list[ExternalContent] = []
    errors: list[str] = []

    logger.info(f"Refreshing external content from {len(handles)} handles")

    for handle in handles:
        try:
            feed_response = await bluesky.get_author_feed(
                handle,
                limit=AUTHOR_FEED_LIMIT,
                cache_ttl=CACHE_TTL_FEED,
            )
        except ProviderFetchError as e:
            logger.error(f"Error fetching from {handle}: {e}")
            errors.append(f"{handle}: {e}")
            continue

        feed = feed_response.get("feed", [])
        total_fetched += len(feed)

        for item in feed:
            post = item.get("post")
            if not post:
                continue
            filter_stats["total_posts"] += 1

            post_uri = post.get("uri")
            labels = civic_filter.extract_safety_labels(post)
            if civic_filter.has_critical_safety_issues(labels):
                filter_stats["safety_issues"] += 1
                logger.debug(f"Skipped (safety): {', '.join(labels)}")
                continue

            if await _already_imported(db, post_uri):
                filter_stats["already_exists"] += 1
                continue

            verdict = moderate_post(post)
            if not verdict.allowed:
                stat = "safety_issues" if verdict.reason == "safety_labels" else verdict.reason
                filter_stats[stat] += 1
                if verdict.moderation and verdict.moderation.is_violation:
                    logger.debug(
                        f"Skipped ({verdict.reason}): "
                        f"{format_flagged_words(verdict.moderation.flagged_words)}"
                    )
                continue

            thread_context = None
            if fetch_threads:
                try:
                    thread_context = await bluesky.get_post_thread(
                        post_uri,
                        depth=THREAD_DEPTH,
                        parent_height=THREAD_PARENT_HEIGHT,
                        cache_ttl=CACHE_TTL_THREAD,
                    )
                    filter_stats["threads_fetched"] += 1
                except ProviderFetchError:
                    logger.warning(f"Thread fetch failed for {post_uri}, continuing without thread context")
                    filter_stats["threads_skipped"] += 1

            author = post.get("author") or {}
            record = post.get("record") or {}
            try:
                content = ExternalContent(
                    platform=PLATFORM,
                    external_id=post_uri,
                    author_handle=author["handle"],
                    author_name=author.get("displayName") or author["handle"],
                    author_did=author.get("did"),
                    content=post_text(post),
                    web_url=bluesky.generate_web_url(post),
                    created_at=_parse_created_at(record["createdAt"]),
                    imported_at=datetime.utcnow(),
                    is_approved=True,
                    topics=verdict.topics,
                    civility_score=verdict.civility_score,
                    safety_labels=labels,
                    is_thread=bool(thread_context),
                    feed_source=f"author:{handle}",
                )
            except (KeyError, ValueError) as e:
                logger.error(f"Malformed post {post_uri}: {e}")
                errors.append(f"Post processing error: {post_uri}: {e}")
                continue

            db.add(content)
            imported.append(content)
            filter_stats["approved"] += 1
            logger.info(f"Approved: {content.content[:60]!r} (score: {verdict.civility_score})")

    await update_feed_state(
        db,
        cursor=None,
        last_post_uri=imported[-1].external_id if imported else None,
        fetched_count=total_fetched,
        approved_count=filter_stats["approved"],
        error="; ".join(errors) if errors else None,
    )
    await log_action(db, "external_content_refreshed", SYSTEM_ACTOR, {
        "handles": len(handles),
        "fetched": total_fetched,
        "approved": filter_stats["approved"],
        "errors": len(errors),
    })
    await db.commit()

    logger.info(
        f"Refresh complete: {filter_stats['total_posts']} posts, "
        f"{filter_stats['approved']} approved, {len(errors)} errors"
    )

    return {
        "content": [c.to_dict() for c in imported],
        "imported": filter_stats["approved"],
        "diagnostics": {
            "handles": handles,
            "total_fetched": total_fetched,
            "filter_stats": filter_stats,
            "errors": errors or None,
        },
    }
