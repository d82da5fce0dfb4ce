"""
Database Models for Bridging the Aisle

- User: members who sign in with magic links
- ExternalContent: Bluesky posts that passed the civic filter
- FeedState: bookkeeping for each aggregate ingestion feed
- BlacklistedEmail: addresses barred from signing in
- AuditLog: record of account and ingestion events
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, JSON
from sqlalchemy.orm import declarative_base
from datetime import datetime


Base = declarative_base()


class User(Base):
    """
    Member account.

    Authentication is passwordless: the e-mail address is the identity and
    every sign-in goes through a magic link.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    terms_accepted_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)


class ExternalContent(Base):
    """
    A post imported from an external platform.

    Only posts approved by the civic filter are stored. ``external_id`` is
    the AT-URI of the post and is unique per platform.
    """
    __tablename__ = "external_content"

    id = Column(Integer, primary_key=True, index=True)
    platform = Column(String, index=True, default="bluesky")
    external_id = Column(String, unique=True, index=True)

    author_handle = Column(String, index=True)
    author_name = Column(String)
    author_did = Column(String)

    content = Column(Text)
    web_url = Column(String)

    # When the author posted it vs. when we pulled it in
    created_at = Column(DateTime)
    imported_at = Column(DateTime, default=datetime.utcnow, index=True)

    is_approved = Column(Boolean, default=False, index=True)
    topics = Column(JSON, default=list)
    civility_score = Column(Integer, default=0)
    safety_labels = Column(JSON, default=list)
    is_thread = Column(Boolean, default=False)

    # e.g. "author:npr.org"
    feed_source = Column(String)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "platform": self.platform,
            "external_id": self.external_id,
            "author_handle": self.author_handle,
            "author_name": self.author_name,
            "author_did": self.author_did,
            "content": self.content,
            "web_url": self.web_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "imported_at": self.imported_at.isoformat() if self.imported_at else None,
            "is_approved": self.is_approved,
            "topics": self.topics or [],
            "civility_score": self.civility_score,
            "safety_labels": self.safety_labels or [],
            "is_thread": self.is_thread,
            "feed_source": self.feed_source,
        }


class FeedState(Base):
    """
    Running totals and last error for a named ingestion feed.
    """
    __tablename__ = "feed_states"

    id = Column(Integer, primary_key=True, index=True)
    feed_name = Column(String, unique=True, index=True)
    cursor = Column(String, nullable=True)
    last_post_uri = Column(String, nullable=True)
    last_fetched_at = Column(DateTime, default=datetime.utcnow)
    total_fetched = Column(Integer, default=0)
    total_approved = Column(Integer, default=0)
    # Consecutive failed refreshes; reset on success
    error_count = Column(Integer, default=0)
    last_error = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)


class BlacklistedEmail(Base):
    """
    Addresses that may not sign up or sign in.
    """
    __tablename__ = "blacklisted_emails"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String, index=True)  # e.g. "user_created", "external_content_refreshed"
    user_email = Column(String, index=True)  # Actor, "system" for background work
    details = Column(String, nullable=True)  # JSON or text description
    created_at = Column(DateTime, default=datetime.utcnow)
