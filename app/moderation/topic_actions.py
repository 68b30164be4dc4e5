# app/moderation/topic_actions.py
"""
Moderator transitions on a topic.

ban / excellent / unexcellent leave a Reply tagged with ``action`` as the
audit record, written by the moderator passed in as ``actor``. close / open
only flip ``closed_at``. Callers commit.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.forum_model import (
    Reply,
    Topic,
    REPLY_ACTION_BAN,
    REPLY_ACTION_EXCELLENT,
    REPLY_ACTION_UNEXCELLENT,
)
from app.models.user_model import User
from app.utils.active_mark import utcnow

logger = logging.getLogger(__name__)


async def _append_action(db: AsyncSession, topic: Topic, actor: User, action: str, body: str = "") -> Reply:
    reply = Reply(
        topic_id=topic.id,
        user_id=actor.id,
        user=actor,
        action=action,
        body=body,
        created_at=utcnow(),
    )
    db.add(reply)
    await db.flush()
    return reply


async def close_topic(db: AsyncSession, topic: Topic) -> Topic:
    if topic.closed_at is None:
        topic.closed_at = utcnow()
        await db.flush()
        logger.info("topic %s closed", topic.id)
    return topic


async def open_topic(db: AsyncSession, topic: Topic) -> Topic:
    if topic.closed_at is not None:
        topic.closed_at = None
        await db.flush()
        logger.info("topic %s reopened", topic.id)
    return topic


async def ban_topic(
    db: AsyncSession,
    topic: Topic,
    actor: Optional[User] = None,
    reason: Optional[str] = None,
) -> Optional[Reply]:
    """Lock the topic; with a reason, also record it as a "ban" reply."""
    if reason and actor is None:
        raise ValueError("a ban reason needs the acting user")

    topic.banned = True
    await db.flush()
    logger.info("topic %s banned by %s", topic.id, getattr(actor, "id", None))

    if not reason:
        return None
    return await _append_action(db, topic, actor, REPLY_ACTION_BAN, reason)


async def excellent_topic(db: AsyncSession, topic: Topic, actor: User) -> Reply:
    topic.excellent = True
    await db.flush()
    logger.info("topic %s marked excellent by %s", topic.id, actor.id)
    return await _append_action(db, topic, actor, REPLY_ACTION_EXCELLENT)


async def unexcellent_topic(db: AsyncSession, topic: Topic, actor: User) -> Reply:
    topic.excellent = False
    await db.flush()
    logger.info("topic %s unmarked excellent by %s", topic.id, actor.id)
    return await _append_action(db, topic, actor, REPLY_ACTION_UNEXCELLENT)
