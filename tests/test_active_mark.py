"""Tests for app/utils/active_mark.py and how topics use it."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app import config
from app.services import reply_service, topic_service
from app.utils import active_mark
from app.utils.active_mark import as_utc, utcnow


def test_assign_is_current_unix_time() -> None:
    before = int(datetime.now(timezone.utc).timestamp())
    mark = active_mark.assign()
    assert mark is not None
    assert before <= mark <= before + 1


def test_is_fresh_uses_configured_window(monkeypatch) -> None:
    now = utcnow()
    assert active_mark.is_fresh(now - timedelta(days=29), now)
    assert not active_mark.is_fresh(now - timedelta(days=31), now)

    monkeypatch.setattr(config, "TOPIC_ACTIVE_MARK_FRESH_DAYS", 60)
    assert active_mark.is_fresh(now - timedelta(days=31), now)


def test_naive_datetimes_are_treated_as_utc() -> None:
    naive = datetime(2024, 1, 1, 12, 0, 0)
    assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None


class TestTopicActiveMark:
    """last_active_mark is set at creation and moved only by qualifying replies."""

    @pytest.mark.asyncio
    async def test_set_on_create(self, make_topic):
        topic = await make_topic()
        assert topic.last_active_mark is not None

    @pytest.mark.asyncio
    async def test_not_changed_by_save(self, db, topic):
        mark = topic.last_active_mark
        await topic_service.update_topic(db, topic, title="Another title")
        await topic_service.save_topic(db, topic)
        assert topic.last_active_mark == mark

    @pytest.mark.asyncio
    async def test_reply_moves_mark_on_fresh_topic(self, topic, make_reply):
        topic.last_active_mark = 1
        await make_reply(topic)
        assert topic.last_active_mark != 1

    @pytest.mark.asyncio
    async def test_reply_keeps_mark_on_month_old_topic(self, topic, make_reply):
        topic.created_at = utcnow() - timedelta(days=31)
        topic.last_active_mark = 1

        reply = await make_reply(topic)

        assert topic.last_active_mark == 1
        assert topic.last_reply_user_id == reply.user_id
        assert topic.last_reply_user_login == reply.user.username

    @pytest.mark.asyncio
    async def test_editing_reply_keeps_mark(self, db, topic, make_reply):
        reply = await make_reply(topic)
        mark = topic.last_active_mark

        await reply_service.update_reply(db, reply, "foobar")

        assert reply.body == "foobar"
        assert topic.last_active_mark == mark
