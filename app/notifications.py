# app/notifications.py
"""
Notification records for topic events.

Delivery (email, push, websocket) reads these rows elsewhere; this module
only decides who gets which record.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.forum_model import Node, Topic
from app.models.notification_model import Notification
from app.models.user_model import UserFollow

logger = logging.getLogger(__name__)

NOTIFY_TOPIC = "topic"
NOTIFY_NODE_CHANGED = "node_changed"


def notify(
    db: AsyncSession,
    recipient_id: int,
    notify_type: str,
    target=None,
    second_target=None,
    actor_id: Optional[int] = None,
) -> Notification:
    n = Notification(
        user_id=recipient_id,
        actor_id=actor_id,
        notify_type=notify_type,
        target_type=type(target).__name__ if target is not None else None,
        target_id=getattr(target, "id", None),
        second_target_type=type(second_target).__name__ if second_target is not None else None,
        second_target_id=getattr(second_target, "id", None),
    )
    db.add(n)
    return n


async def notify_topic_created(db: AsyncSession, topic: Topic) -> int:
    """One unread "topic" notification per follower of the author."""
    if topic.user_id is None:
        return 0
    follower_ids = (
        await db.execute(
            select(UserFollow.follower_id).where(UserFollow.following_id == topic.user_id)
        )
    ).scalars().all()
    sent = 0
    for follower_id in follower_ids:
        if follower_id == topic.user_id:
            continue
        notify(db, follower_id, NOTIFY_TOPIC, target=topic, actor_id=topic.user_id)
        sent += 1
    await db.flush()
    return sent


async def notify_topic_node_changed(db: AsyncSession, topic_id: int, node_id: int) -> Optional[Notification]:
    topic = await db.get(Topic, topic_id)
    node = await db.get(Node, node_id)
    if topic is None or node is None or topic.user_id is None:
        return None
    n = notify(db, topic.user_id, NOTIFY_NODE_CHANGED, target=topic, second_target=node)
    await db.flush()
    logger.info("topic %s moved to node %s, author %s notified", topic_id, node_id, topic.user_id)
    return n
