"""Tests for the topic's last-reply fields and reply positions."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.models.forum_model import Reply
from app.moderation import topic_actions
from app.services import reply_service
from app.services.errors import TopicLockedError
from app.utils.active_mark import utcnow


def _linkage(topic):
    return (
        topic.replied_at,
        topic.last_reply_id,
        topic.last_reply_user_id,
        topic.last_reply_user_login,
    )


class TestUpdateLastReply:

    @pytest.mark.asyncio
    async def test_reply_updates_topic(self, topic, user, make_reply):
        reply = await make_reply(topic, user=user)

        assert topic.last_active_mark is not None
        assert topic.replied_at == reply.created_at
        assert topic.last_reply_id == reply.id
        assert topic.last_reply_user_id == reply.user_id
        assert topic.last_reply_user_login == user.username
        assert topic.replies_count == 1

    @pytest.mark.asyncio
    async def test_returns_true_and_bumps_updated_at(self, db, topic, user):
        old_updated_at = topic.updated_at
        reply = Reply(topic_id=topic.id, user_id=user.id, user=user, body="hi")
        db.add(reply)
        await db.flush()

        assert topic.update_last_reply(reply) is True
        assert topic.replied_at == reply.created_at
        assert topic.last_reply_id == reply.id
        assert topic.last_reply_user_id == reply.user_id
        assert topic.last_reply_user_login == user.username
        assert topic.last_active_mark is not None
        assert topic.updated_at != old_updated_at

    @pytest.mark.asyncio
    async def test_none_without_force_is_noop(self, topic, make_reply):
        await make_reply(topic)
        before = _linkage(topic)

        assert topic.update_last_reply(None) is False
        assert _linkage(topic) == before

    @pytest.mark.asyncio
    async def test_none_with_force_clears_group(self, db, topic, make_reply):
        await make_reply(topic)
        mark = topic.last_active_mark
        stale = utcnow() - timedelta(days=1)
        topic.updated_at = stale

        assert topic.update_last_reply(None, force=True) is True
        await db.flush()

        assert _linkage(topic) == (None, None, None, None)
        assert topic.last_active_mark == mark
        assert topic.updated_at > stale


class TestUpdateDeletedLastReply:

    @pytest.mark.asyncio
    async def test_goes_back_to_previous_reply(self, db, topic, make_topic, make_reply, monkeypatch):
        r0 = await make_reply(topic)
        other = await make_topic()
        db.add(Reply(topic_id=other.id, body="elsewhere", action="foo"))
        await db.flush()
        r1 = await make_reply(topic)
        assert topic.last_reply_id == r1.id

        calls = []
        original = topic.update_last_reply

        def spy(reply, force=False):
            calls.append((reply, force))
            return original(reply, force=force)

        monkeypatch.setattr(topic, "update_last_reply", spy)

        assert await reply_service.update_deleted_last_reply(db, topic, r1) is True
        assert calls == [(r0, True)]
        assert topic.last_reply_id == r0.id
        assert topic.last_reply_user_login == r0.user.username

    @pytest.mark.asyncio
    async def test_clears_when_no_previous_reply(self, db, topic, make_reply):
        r = await make_reply(topic)

        assert await reply_service.update_deleted_last_reply(db, topic, r) is True
        await db.refresh(topic)

        assert topic.last_reply_id is None
        assert topic.last_reply_user_login is None
        assert topic.last_reply_user_id is None
        assert topic.replied_at is None

    @pytest.mark.asyncio
    async def test_none_is_noop(self, db, topic):
        assert await reply_service.update_deleted_last_reply(db, topic, None) is False

    @pytest.mark.asyncio
    async def test_not_the_last_reply_is_noop(self, db, topic, make_reply):
        r0 = await make_reply(topic)
        r1 = await make_reply(topic)

        assert await reply_service.update_deleted_last_reply(db, topic, r0) is False
        assert topic.last_reply_id == r1.id

    @pytest.mark.asyncio
    async def test_delete_reply_relinks_and_counts(self, db, topic, make_reply):
        r0 = await make_reply(topic)
        r1 = await make_reply(topic)
        assert topic.replies_count == 2

        await reply_service.delete_reply(db, topic, r1)

        assert topic.last_reply_id == r0.id
        assert topic.replies_count == 1
        assert await reply_service.reply_ids(db, topic) == [r0.id]


class TestReplyPositions:

    @pytest.mark.asyncio
    async def test_floor_of_reply(self, db, topic, user, make_reply):
        replies = [await make_reply(topic, user=user) for _ in range(5)]

        assert await reply_service.floor_of_reply(db, topic, replies[2]) == 3
        assert await reply_service.floor_of_reply(db, topic, replies[3]) == 4
        assert await reply_service.floor_of_reply(db, topic, replies[0]) == 1

    @pytest.mark.asyncio
    async def test_reply_ids_in_creation_order(self, db, topic, make_reply):
        replies = [await make_reply(topic) for _ in range(10)]
        assert await reply_service.reply_ids(db, topic) == [r.id for r in replies]


class TestReplyRules:

    @pytest.mark.asyncio
    async def test_audit_reply_does_not_move_pointer(self, db, topic, admin, make_reply):
        r = await make_reply(topic)
        await topic_actions.excellent_topic(db, topic, admin)

        assert topic.last_reply_id == r.id
        assert topic.replies_count == 1

    @pytest.mark.asyncio
    async def test_banned_topic_rejects_replies(self, db, topic, user, admin, make_reply):
        await topic_actions.ban_topic(db, topic)

        with pytest.raises(TopicLockedError):
            await make_reply(topic, user=user)

        reply = await make_reply(topic, user=admin)
        assert topic.last_reply_id == reply.id

    @pytest.mark.asyncio
    async def test_closed_topic_rejects_replies(self, db, topic, user, make_reply):
        await topic_actions.close_topic(db, topic)

        with pytest.raises(TopicLockedError):
            await make_reply(topic, user=user)

        count = len((await db.execute(select(Reply).where(Reply.topic_id == topic.id))).scalars().all())
        assert count == 0
