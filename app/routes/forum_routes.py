import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app import config
from app.counter_store import CounterStore, get_counter_store
from app.database import get_async_session
from app.deps.admin import require_admin
from app.limiter import limiter
from app.models.forum_model import Reply, Topic
from app.models.user_model import User
from app.moderation import topic_actions
from app.schemas.forum_schemas import (
    TopicOut, TopicDetailOut, ReplyOut, CreateTopicIn, UpdateTopicIn, CreateReplyIn, UpdateReplyIn,
    BanTopicIn
)
from app.services import reply_service, topic_service
from app.services.errors import TopicLockedError, TopicValidationError
from app.utils.token_utils import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forum", tags=["forum"])


# ------------------------------
# helpers
# ------------------------------
def _validation_error(exc: TopicValidationError) -> HTTPException:
    if "base" in exc.errors:
        status_code, code = status.HTTP_429_TOO_MANY_REQUESTS, "RATE_LIMITED"
    elif "body" in exc.errors:
        status_code, code = status.HTTP_400_BAD_REQUEST, "BANNED_WORD"
    else:
        status_code, code = status.HTTP_400_BAD_REQUEST, "INVALID"
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": exc.messages[0], "errors": exc.errors},
    )


def _locked_error() -> HTTPException:
    return HTTPException(status_code=423, detail={"code": "LOCKED", "message": "Topic is locked"})


async def _get_topic(db: AsyncSession, topic_id: int) -> Topic:
    t = await db.get(Topic, topic_id)
    if not t or t.deleted:
        raise HTTPException(status_code=404, detail="Topic not found")
    return t


async def _get_reply(db: AsyncSession, topic: Topic, reply_id: int) -> Reply:
    r = await db.get(Reply, reply_id)
    if not r or r.topic_id != topic.id:
        raise HTTPException(status_code=404, detail="Reply not found")
    return r


def _can_manage(user: User, owner_id: Optional[int]) -> bool:
    return user.is_admin or owner_id == user.id


# ------------------------------
# Mappers
# ------------------------------
def _topic_to_out(t: Topic) -> TopicOut:
    return TopicOut(
        id=t.id,
        title=t.title,
        body=t.body,
        user_id=t.user_id,
        author_username=t.user.username if t.user else None,
        node_id=t.node_id,
        node_name=t.node_name,
        last_active_mark=t.last_active_mark,
        replied_at=t.replied_at,
        last_reply_id=t.last_reply_id,
        last_reply_user_id=t.last_reply_user_id,
        last_reply_user_login=t.last_reply_user_login,
        replies_count=t.replies_count or 0,
        closed=t.closed,
        excellent=bool(t.excellent),
        banned=bool(t.banned),
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _reply_to_out(r: Reply, floor: Optional[int] = None) -> ReplyOut:
    return ReplyOut(
        id=r.id,
        topic_id=r.topic_id,
        user_id=r.user_id,
        author_username=r.user.username if r.user else None,
        body=r.body,
        action=r.action,
        floor=floor,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


# ------------------------------
# Topics
# ------------------------------
@router.get("/topics", response_model=List[TopicOut])
async def list_topics(
    excellent: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = topic_service.list_topics_stmt(excellent=excellent)
    stmt = stmt.offset((page - 1) * page_size).limit(page_size)
    rows = (await db.execute(stmt)).scalars().all()
    return [_topic_to_out(t) for t in rows]


@router.post("/topics", response_model=TopicOut, status_code=201)
@limiter.limit(config.FORUM_TOPIC_CREATE_RATE)
async def create_topic(
    request: Request,
    payload: CreateTopicIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    store: CounterStore = Depends(get_counter_store),
):
    try:
        topic = await topic_service.create_topic(
            db, store, user, payload.title, payload.body, payload.node_id
        )
    except TopicValidationError as e:
        raise _validation_error(e)

    await db.commit()
    return _topic_to_out(topic)


@router.get("/topics/{topic_id}", response_model=TopicDetailOut)
async def get_topic(
    topic_id: int,
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    replies = (
        await db.execute(
            select(Reply).where(Reply.topic_id == topic_id).order_by(Reply.id.asc())
        )
    ).scalars().all()
    return TopicDetailOut(
        topic=_topic_to_out(t),
        replies=[_reply_to_out(r, floor) for floor, r in enumerate(replies, start=1)],
    )


@router.patch("/topics/{topic_id}", response_model=TopicOut)
@limiter.limit(config.FORUM_REPLY_CREATE_RATE)
async def update_topic(
    request: Request,
    topic_id: int,
    payload: UpdateTopicIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    if not _can_manage(user, t.user_id):
        raise HTTPException(status_code=403, detail="Admins or the topic owner may edit this topic.")
    # If banned, only admins may edit anything
    if t.banned and not user.is_admin:
        raise _locked_error()

    try:
        await topic_service.update_topic(
            db,
            t,
            title=payload.title,
            body=payload.body,
            node_id=payload.node_id,
            admin_editing=user.is_admin,
        )
    except TopicValidationError as e:
        raise _validation_error(e)

    await db.commit()
    return _topic_to_out(t)


@router.delete("/topics/{topic_id}", status_code=204)
async def delete_topic(
    topic_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    if not _can_manage(user, t.user_id):
        raise HTTPException(status_code=403, detail="Admins or the topic owner may delete this topic.")

    await topic_service.destroy_topic_by(db, t, user)
    await db.commit()
    return Response(status_code=204)


# ------------------------------
# Replies
# ------------------------------
@router.post("/topics/{topic_id}/replies", response_model=ReplyOut, status_code=201)
@limiter.limit(config.FORUM_REPLY_CREATE_RATE)
async def create_reply(
    request: Request,
    topic_id: int,
    payload: CreateReplyIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    try:
        r = await reply_service.create_reply(db, t, user, payload.body)
    except TopicLockedError:
        raise _locked_error()
    except TopicValidationError as e:
        raise _validation_error(e)

    floor = await reply_service.floor_of_reply(db, t, r)
    await db.commit()
    return _reply_to_out(r, floor)


@router.patch("/topics/{topic_id}/replies/{reply_id}", response_model=ReplyOut)
async def update_reply(
    topic_id: int,
    reply_id: int,
    payload: UpdateReplyIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    r = await _get_reply(db, t, reply_id)
    if r.is_audit or not _can_manage(user, r.user_id):
        raise HTTPException(status_code=403, detail="Admins or the reply owner may edit this reply.")
    if (t.banned or t.closed) and not user.is_admin:
        raise _locked_error()

    try:
        await reply_service.update_reply(db, r, payload.body)
    except TopicValidationError as e:
        raise _validation_error(e)

    await db.commit()
    return _reply_to_out(r)


@router.delete("/topics/{topic_id}/replies/{reply_id}", status_code=204)
async def delete_reply(
    topic_id: int,
    reply_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    r = await _get_reply(db, t, reply_id)
    if not _can_manage(user, r.user_id):
        raise HTTPException(status_code=403, detail="Admins or the reply owner may delete this reply.")

    await reply_service.delete_reply(db, t, r)
    await db.commit()
    return Response(status_code=204)


@router.get("/topics/{topic_id}/replies/{reply_id}/floor")
async def reply_floor(
    topic_id: int,
    reply_id: int,
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    r = await _get_reply(db, t, reply_id)
    return {"topic_id": t.id, "reply_id": r.id, "floor": await reply_service.floor_of_reply(db, t, r)}


# ------------------------------
# Moderation
# ------------------------------
@router.post("/topics/{topic_id}/ban", response_model=TopicOut)
async def ban_topic(
    topic_id: int,
    body: BanTopicIn,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    await topic_actions.ban_topic(db, t, actor=admin, reason=body.reason)
    await db.commit()
    return _topic_to_out(t)


@router.post("/topics/{topic_id}/close", response_model=TopicOut)
async def close_topic(
    topic_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    if not _can_manage(user, t.user_id):
        raise HTTPException(status_code=403, detail="Admins or the topic owner may close this topic.")
    await topic_actions.close_topic(db, t)
    await db.commit()
    return _topic_to_out(t)


@router.post("/topics/{topic_id}/open", response_model=TopicOut)
async def open_topic(
    topic_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    if not _can_manage(user, t.user_id):
        raise HTTPException(status_code=403, detail="Admins or the topic owner may open this topic.")
    await topic_actions.open_topic(db, t)
    await db.commit()
    return _topic_to_out(t)


@router.post("/topics/{topic_id}/excellent", response_model=TopicOut)
async def excellent_topic(
    topic_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    await topic_actions.excellent_topic(db, t, admin)
    await db.commit()
    return _topic_to_out(t)


@router.post("/topics/{topic_id}/unexcellent", response_model=TopicOut)
async def unexcellent_topic(
    topic_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    t = await _get_topic(db, topic_id)
    await topic_actions.unexcellent_topic(db, t, admin)
    await db.commit()
    return _topic_to_out(t)
