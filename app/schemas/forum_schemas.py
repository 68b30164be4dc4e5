from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class ReplyOut(BaseModel):
    id: int
    topic_id: int
    user_id: Optional[int] = None
    author_username: Optional[str] = None
    body: str
    action: Optional[str] = None
    floor: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class TopicOut(BaseModel):
    id: int
    title: str
    body: str
    user_id: Optional[int] = None
    author_username: Optional[str] = None
    node_id: int
    node_name: Optional[str] = None
    last_active_mark: int
    replied_at: Optional[datetime] = None
    last_reply_id: Optional[int] = None
    last_reply_user_id: Optional[int] = None
    last_reply_user_login: Optional[str] = None
    replies_count: int = 0
    closed: bool = False
    excellent: bool = False
    banned: bool = False
    created_at: datetime
    updated_at: datetime


class TopicDetailOut(BaseModel):
    topic: TopicOut
    replies: List[ReplyOut] = []


class CreateTopicIn(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    body: str = Field(min_length=1)
    node_id: int


class UpdateTopicIn(BaseModel):
    # All optional so the client can send only what changed
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    body: Optional[str] = Field(default=None, min_length=1)
    node_id: Optional[int] = None


class CreateReplyIn(BaseModel):
    body: str = Field(min_length=1)


class UpdateReplyIn(BaseModel):
    body: str = Field(min_length=1)


class BanTopicIn(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)
