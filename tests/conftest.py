"""Shared test fixtures for the forum topic tests."""

from __future__ import annotations

import itertools
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import config
from app.counter_store import MemoryCounterStore
from app.database import Base
from app.models import notification_model  # noqa: F401
from app.models.forum_model import Node
from app.models.user_model import User, UserFollow
from app.services import reply_service, topic_service

# Use in-memory SQLite for tests (faster, no external dependencies)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def forum_settings(monkeypatch):
    """Start every test from the shipped defaults: no throttling, no banned words."""
    monkeypatch.setattr(config, "TOPIC_CREATE_LIMIT_INTERVAL", 0)
    monkeypatch.setattr(config, "TOPIC_CREATE_HOUR_LIMIT_COUNT", 0)
    monkeypatch.setattr(config, "BAN_WORDS_IN_BODY", [])
    monkeypatch.setattr(config, "TOPIC_ACTIVE_MARK_FRESH_DAYS", 30)
    monkeypatch.setattr(config, "SECRET_KEY", "test-secret-key-with-at-least-32-characters")


@pytest_asyncio.fixture
async def test_engine():
    # StaticPool keeps every connection on the same in-memory database
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store() -> MemoryCounterStore:
    return MemoryCounterStore()


@pytest.fixture
def make_user(db: AsyncSession):
    seq = itertools.count(1)

    async def _make(role: str = "GENERAL", username: str | None = None) -> User:
        n = next(seq)
        user = User(
            username=username or f"user{n}",
            email=f"user{n}@example.com",
            role=role,
        )
        db.add(user)
        await db.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(role="ADMIN", username="admin")


@pytest.fixture
def make_node(db: AsyncSession):
    seq = itertools.count(1)

    async def _make(name: str | None = None) -> Node:
        node = Node(name=name or f"node{next(seq)}")
        db.add(node)
        await db.flush()
        return node

    return _make


@pytest_asyncio.fixture
async def node(make_node) -> Node:
    return await make_node()


@pytest.fixture
def make_topic(db: AsyncSession, store: MemoryCounterStore, make_user, node: Node):
    seq = itertools.count(1)

    async def _make(user: User | None = None, title: str | None = None, body: str = "Topic body", node_id: int | None = None):
        if user is None:
            user = await make_user()
        return await topic_service.create_topic(
            db,
            store,
            user,
            title or f"Topic title {next(seq)}",
            body,
            node_id if node_id is not None else node.id,
        )

    return _make


@pytest_asyncio.fixture
async def topic(make_topic, user):
    return await make_topic(user=user)


@pytest.fixture
def make_reply(db: AsyncSession, make_user):
    async def _make(topic, user: User | None = None, body: str = "Reply body"):
        if user is None:
            user = await make_user()
        return await reply_service.create_reply(db, topic, user, body)

    return _make


@pytest.fixture
def follow(db: AsyncSession):
    async def _follow(follower: User, followed: User) -> None:
        db.add(UserFollow(follower_id=follower.id, following_id=followed.id))
        await db.flush()

    return _follow
