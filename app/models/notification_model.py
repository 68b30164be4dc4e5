from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from app.database import Base
from app.utils.active_mark import utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    # recipient
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notify_type = Column(String(32), nullable=False, index=True)

    target_type = Column(String(32), nullable=True)
    target_id = Column(Integer, nullable=True)
    second_target_type = Column(String(32), nullable=True)
    second_target_id = Column(Integer, nullable=True)

    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def unread(self) -> bool:
        return self.read_at is None
