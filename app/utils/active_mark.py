# app/utils/active_mark.py
"""
last_active_mark: the sort key of topic listings.

It is set once when a topic is created and moved again only when a reply
lands on a topic that is still fresh, so an old thread does not jump back
to the top of the list because of a single new reply.
"""
from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from app import config


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


def assign() -> int:
    return int(time.time())


def is_fresh(created_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if created_at is None:
        # not persisted yet
        return True
    now = now or utcnow()
    window = timedelta(days=config.TOPIC_ACTIVE_MARK_FRESH_DAYS)
    return as_utc(created_at) > now - window


def refresh_on_reply(topic, reply) -> bool:
    """Move the topic's mark for a new reply; returns True if it moved."""
    if not is_fresh(topic.created_at):
        return False
    topic.last_active_mark = assign()
    return True
