from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint

from app.database import Base
from app.utils.active_mark import utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)  # the public login
    password = Column(String, nullable=False, default="")
    role = Column(String, default="GENERAL")  # GENERAL or ADMIN
    email = Column(String, unique=True, index=True, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False, server_default="false")

    registered_at = Column(DateTime(timezone=True), nullable=True, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").upper() == "ADMIN"


class UserFollow(Base):
    __tablename__ = "user_follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_user_follow"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # follower_id follows following_id
    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
