from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.timestamps import utcnow


def make_pair_key(user_a: int, user_b: int) -> str:
    """Order-independent key of a participant pair."""
    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}:{high}"


class Chat(Base):
    __tablename__ = "chats"
    __table_args__ = (
        CheckConstraint("user1_id <> user2_id", name="ck_chats_distinct_participants"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # "<min>:<max>", one chat per unordered pair
    pair_key = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_participant(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id
