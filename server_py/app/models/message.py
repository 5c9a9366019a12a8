from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.timestamps import utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    sent_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    # set at most once; delivered_at is reserved, the live protocol never sets it
    delivered_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)

    chat = relationship("Chat", back_populates="messages")
    media = relationship(
        "Media",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="Media.id",
        lazy="selectin",
    )
