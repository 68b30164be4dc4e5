# app/moderation/rate_limit.py
"""
Per-user topic creation throttling.

Two independent windows are kept in the counter store:

- ``users:<id>:topic-create``: exists while the user is inside the minimum
  interval between two topics (TOPIC_CREATE_LIMIT_INTERVAL seconds).
- ``users:<id>:topic-create-by-hour``: topics created during the current hour,
  capped by TOPIC_CREATE_HOUR_LIMIT_COUNT.

A limit of 0 turns its check off. Checks never write; counters are only
incremented once the topic has been stored, so a rejected attempt leaves
them as they were. Two concurrent requests may both pass the check before
either increments; this is a soft throttle.
"""
from __future__ import annotations

import logging
from typing import List

from app import config
from app.counter_store import CounterStore

logger = logging.getLogger(__name__)

HOUR_WINDOW_SECONDS = 60 * 60

MSG_TOO_FREQUENT = "创建太频繁，请稍后再试"


def minute_key(user_id: int) -> str:
    return f"users:{user_id}:topic-create"


def hour_key(user_id: int) -> str:
    return f"users:{user_id}:topic-create-by-hour"


def hour_limit_message(limit: int) -> str:
    return f"1 小时内创建话题量不允许超过 {limit} 篇，无法再次发布"


async def check_topic_create_limit(store: CounterStore, user_id: int) -> List[str]:
    """Return the admission violations for ``user_id``; empty means allowed."""
    interval = int(config.TOPIC_CREATE_LIMIT_INTERVAL or 0)
    if interval > 0 and await store.get(minute_key(user_id)) is not None:
        logger.info("topic create rejected for user %s: interval %ss", user_id, interval)
        return [MSG_TOO_FREQUENT]

    hour_limit = int(config.TOPIC_CREATE_HOUR_LIMIT_COUNT or 0)
    if hour_limit > 0:
        count = await store.get(hour_key(user_id)) or 0
        if count >= hour_limit:
            logger.info("topic create rejected for user %s: %s in the last hour", user_id, count)
            return [hour_limit_message(hour_limit)]

    return []


async def increment_topic_create_count(store: CounterStore, user_id: int) -> None:
    interval = int(config.TOPIC_CREATE_LIMIT_INTERVAL or 0)
    if interval > 0:
        await store.incr(minute_key(user_id), interval)
    await store.incr(hour_key(user_id), HOUR_WINDOW_SECONDS)
