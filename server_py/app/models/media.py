from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.timestamps import utcnow


class Media(Base):
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    image_id = Column(String, nullable=False)  # id returned by the image store
    url = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    message = relationship("Message", back_populates="media")
