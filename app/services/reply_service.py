from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.forum_model import Reply, Topic
from app.models.user_model import User
from app.moderation.profanity import ban_word_violations
from app.services.errors import TopicLockedError, TopicValidationError
from app.utils.active_mark import utcnow

logger = logging.getLogger(__name__)


async def create_reply(db: AsyncSession, topic: Topic, user: User, body: str) -> Reply:
    if (topic.banned or topic.closed) and not user.is_admin:
        raise TopicLockedError(f"topic {topic.id} does not accept replies")

    violations = ban_word_violations(body)
    if violations:
        raise TopicValidationError({"body": violations})

    reply = Reply(
        topic_id=topic.id,
        user_id=user.id,
        user=user,
        body=body,
        created_at=utcnow(),
    )
    db.add(reply)
    await db.flush()  # get reply.id

    topic.replies_count = (topic.replies_count or 0) + 1
    topic.update_last_reply(reply)
    await db.flush()
    return reply


async def update_reply(db: AsyncSession, reply: Reply, body: str) -> Reply:
    # editing never touches the topic, so last_active_mark stays where it is
    violations = ban_word_violations(body)
    if violations:
        raise TopicValidationError({"body": violations})
    reply.body = body
    await db.flush()
    return reply


async def delete_reply(db: AsyncSession, topic: Topic, reply: Reply) -> None:
    await db.delete(reply)
    await db.flush()

    if not reply.is_audit:
        topic.replies_count = max(0, (topic.replies_count or 0) - 1)
    await update_deleted_last_reply(db, topic, reply)
    await db.flush()


async def previous_reply(db: AsyncSession, topic: Topic, reply: Reply) -> Optional[Reply]:
    """Newest reply of ``topic`` created before ``reply`` (ids grow with time)."""
    return (
        await db.execute(
            select(Reply)
            .where(Reply.topic_id == topic.id, Reply.id < reply.id)
            .order_by(Reply.id.desc())
            .limit(1)
        )
    ).scalars().first()


async def update_deleted_last_reply(db: AsyncSession, topic: Topic, reply: Optional[Reply]) -> bool:
    """
    ``reply`` is going away. If it is the one the topic points at, fall back
    to the reply before it, or clear the pointer when there is none.
    Returns True when the pointer was recomputed.
    """
    if reply is None:
        return False
    if reply.id != topic.last_reply_id:
        return False

    prev = await previous_reply(db, topic, reply)
    topic.update_last_reply(prev, force=True)
    await db.flush()
    logger.info("topic %s last reply %s -> %s", topic.id, reply.id, getattr(prev, "id", None))
    return True


async def reply_ids(db: AsyncSession, topic: Topic) -> List[int]:
    return list(
        (
            await db.execute(
                select(Reply.id).where(Reply.topic_id == topic.id).order_by(Reply.id.asc())
            )
        ).scalars().all()
    )


async def floor_of_reply(db: AsyncSession, topic: Topic, reply: Reply) -> int:
    """1-based position of ``reply`` in its topic."""
    count = (
        await db.execute(
            select(func.count(Reply.id)).where(Reply.topic_id == topic.id, Reply.id <= reply.id)
        )
    ).scalar_one()
    return int(count or 0)
