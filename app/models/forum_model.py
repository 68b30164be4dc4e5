from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
    event,
    inspect,
    text
)
from sqlalchemy.orm import relationship, validates, Session
from app.database import Base
from app.models.user_model import User  # noqa: F401  (relationship target)
from app.utils import active_mark
from app.utils.active_mark import utcnow
from app.utils.auto_space import auto_space

# Replies tagged with one of these are moderation records, not user content
REPLY_ACTION_BAN = "ban"
REPLY_ACTION_EXCELLENT = "excellent"
REPLY_ACTION_UNEXCELLENT = "unexcellent"

# Only these columns feed the search index
INDEXED_FIELDS = frozenset({"title", "body"})


class Node(Base):
    __tablename__ = "nodes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)


class Topic(Base):
    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    body = Column(Text, nullable=False)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    node_id = Column(Integer, ForeignKey("nodes.id"), nullable=False, index=True)

    # listing order; see app.utils.active_mark
    last_active_mark = Column(BigInteger, nullable=False, default=active_mark.assign, index=True)
    suggested_at = Column(DateTime(timezone=True), nullable=True)

    # denormalized last reply, always written as a group
    replied_at = Column(DateTime(timezone=True), nullable=True)
    last_reply_id = Column(Integer, nullable=True)
    last_reply_user_id = Column(Integer, nullable=True)
    last_reply_user_login = Column(String, nullable=True)
    replies_count = Column(Integer, nullable=False, default=0, server_default="0")

    closed_at = Column(DateTime(timezone=True), nullable=True)
    excellent = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    banned = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    who_deleted = Column(String, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", lazy="joined")
    node = relationship("Node", lazy="joined")

    @validates("title")
    def _space_title(self, key, value):
        return auto_space(value)

    @property
    def node_name(self):
        return self.node.name if self.node else None

    @property
    def closed(self) -> bool:
        return self.closed_at is not None

    @property
    def deleted(self) -> bool:
        return self.deleted_at is not None

    def update_last_reply(self, reply, force: bool = False) -> bool:
        """
        Point the topic at ``reply`` as its newest reply.

        ``None`` is ignored unless ``force`` is set, in which case the four
        last-reply fields are cleared. last_active_mark is never cleared.
        """
        if reply is None and not force:
            return False

        if reply is None:
            self.replied_at = None
            self.last_reply_id = None
            self.last_reply_user_id = None
            self.last_reply_user_login = None
        else:
            self.replied_at = reply.created_at
            self.last_reply_id = reply.id
            self.last_reply_user_id = reply.user_id
            self.last_reply_user_login = reply.user.username if reply.user else None
            active_mark.refresh_on_reply(self, reply)

        self.updated_at = utcnow()
        return True

    def pending_changes(self) -> frozenset:
        """Column names modified since the last flush."""
        state = inspect(self)
        return frozenset(
            attr.key
            for attr in state.mapper.column_attrs
            if state.attrs[attr.key].history.has_changes()
        )

    @property
    def saved_changes(self) -> frozenset:
        """Column names written by the most recent flush of this topic."""
        return getattr(self, "_saved_changes", frozenset())

    def indexed_changed(self) -> bool:
        return bool(self.saved_changes & INDEXED_FIELDS)


class Reply(Base):
    __tablename__ = "replies"

    id = Column(Integer, primary_key=True, index=True)

    topic_id = Column(
        Integer,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    body = Column(Text, nullable=False)
    # None for normal replies, REPLY_ACTION_* for moderation records
    action = Column(String(32), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", lazy="joined")

    @property
    def is_audit(self) -> bool:
        return self.action is not None


@event.listens_for(Session, "before_flush")
def _capture_topic_changes(session, flush_context, instances):
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, Topic):
            obj._saved_changes = obj.pending_changes()


@event.listens_for(Topic, "load")
@event.listens_for(Topic, "refresh")
def _reset_topic_changes(target, *args):
    target._saved_changes = frozenset()
