from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app import notifications
from app.counter_store import CounterStore
from app.models.forum_model import Node, Topic
from app.models.user_model import User
from app.moderation import rate_limit
from app.moderation.profanity import ban_word_violations
from app.services.errors import TopicValidationError
from app.utils import active_mark
from app.utils.active_mark import utcnow

logger = logging.getLogger(__name__)

MSG_NODE_MISSING = "Node not found"


async def save_topic(db: AsyncSession, topic: Topic) -> Topic:
    # a flush that writes nothing for this topic still resets its saved changes
    topic._saved_changes = topic.pending_changes()
    await db.flush()
    if topic.indexed_changed():
        logger.info("topic %s queued for search reindex", topic.id)
    return topic


async def create_topic(
    db: AsyncSession,
    store: CounterStore,
    user: User,
    title: str,
    body: str,
    node_id: Optional[int],
) -> Topic:
    """
    Validate, throttle and store a new topic, then notify the author's followers.

    Every check runs before anything is written: on TopicValidationError no row
    is added and the creation counters are untouched.
    """
    errors = {}

    body_errors = ban_word_violations(body)
    if body_errors:
        errors["body"] = body_errors

    node = await db.get(Node, node_id) if node_id is not None else None
    if node is None:
        errors["node_id"] = [MSG_NODE_MISSING]

    admission = await rate_limit.check_topic_create_limit(store, user.id)
    if admission:
        errors["base"] = admission

    if errors:
        raise TopicValidationError(errors)

    topic = Topic(
        title=title,
        body=body,
        user_id=user.id,
        user=user,
        node_id=node.id,
        node=node,
        last_active_mark=active_mark.assign(),
        created_at=utcnow(),
    )
    db.add(topic)
    await save_topic(db, topic)

    await rate_limit.increment_topic_create_count(store, user.id)
    await notifications.notify_topic_created(db, topic)
    return topic


async def update_topic(
    db: AsyncSession,
    topic: Topic,
    title: Optional[str] = None,
    body: Optional[str] = None,
    node_id: Optional[int] = None,
    admin_editing: bool = False,
) -> Topic:
    """
    Edit title/body/node. A node change made through the admin path tells
    the author where the topic went.
    """
    errors = {}
    if body is not None:
        body_errors = ban_word_violations(body)
        if body_errors:
            errors["body"] = body_errors

    new_node = None
    if node_id is not None and node_id != topic.node_id:
        new_node = await db.get(Node, node_id)
        if new_node is None:
            errors["node_id"] = [MSG_NODE_MISSING]

    if errors:
        raise TopicValidationError(errors)

    old_node_id = topic.node_id
    if title is not None:
        topic.title = title
    if body is not None:
        topic.body = body
    if new_node is not None:
        topic.node_id = new_node.id
        topic.node = new_node

    await save_topic(db, topic)

    if admin_editing and topic.node_id != old_node_id:
        await notifications.notify_topic_node_changed(db, topic.id, topic.node_id)
    return topic


async def destroy_topic_by(db: AsyncSession, topic: Topic, user: Optional[User]) -> bool:
    """Soft delete, remembering who did it. Without a user nothing happens."""
    if user is None:
        return False
    topic.who_deleted = user.username
    topic.deleted_at = utcnow()
    await save_topic(db, topic)
    logger.info("topic %s deleted by %s", topic.id, user.username)
    return True


def list_topics_stmt(excellent: bool = False):
    stmt = select(Topic).where(Topic.deleted_at.is_(None))
    if excellent:
        stmt = stmt.where(Topic.excellent.is_(True))
    return stmt.order_by(
        Topic.suggested_at.desc().nullslast(),
        Topic.last_active_mark.desc(),
        Topic.id.desc(),
    )


def excellent_topics_stmt():
    return list_topics_stmt(excellent=True)
