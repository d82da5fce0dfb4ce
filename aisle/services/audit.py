"""
Audit Logging Service

Records account and ingestion events:
- user_created: a member signed up
- external_content_refreshed: an aggregate ingestion run finished
"""

from sqlalchemy.ext.asyncio import AsyncSession
from aisle.models import AuditLog
import json


SYSTEM_ACTOR = "system"


async def log_action(
    db: AsyncSession,
    action: str,
    user_email: str,
    details: dict | str | None = None
):
    """
    Add an audit entry to the current transaction.

    Nothing is committed here. The caller commits together with the action
    being audited, so a failed action leaves no audit trail behind.

    Args:
        db: Database session
        action: Event name, e.g. "user_created"
        user_email: Actor's e-mail, or SYSTEM_ACTOR
        details: Dicts are stored as JSON, anything else as text

    Example:
        await log_action(db, "user_created", "ada@example.org")
        await db.commit()
    """
    details_str = None
    if details:
        if isinstance(details, dict):
            details_str = json.dumps(details)
        else:
            details_str = str(details)

    db.add(AuditLog(
        action=action,
        user_email=user_email,
        details=details_str
    ))
