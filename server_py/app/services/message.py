from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.timestamps import utcnow
from app.models.chat import Chat
from app.models.message import Message


def clean_content(content: Optional[str], *, allow_empty: bool = False, temp_id: Optional[str] = None) -> str:
    text = (content or "").strip()
    if not text and not allow_empty:
        raise ValidationError("Message content cannot be empty", temp_id=temp_id)
    if len(text) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError("Message is too long", temp_id=temp_id)
    return text


class MessageService:
    """Сообщения чата в БД."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        *,
        chat_id: int,
        sender_id: int,
        content: str,
        auto_commit: bool = True,
    ) -> Message:
        message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            sent_at=utcnow(),
        )
        self.db.add(message)
        await self.db.flush()
        if auto_commit:
            await self.db.commit()
        return message

    async def get_by_id(self, message_id: int) -> Optional[Message]:
        result = await self.db.execute(
            select(Message)
            .where(Message.id == message_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_chat(
        self,
        chat_id: int,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> List[Message]:
        """Newest first; callers reverse the page for display."""
        stmt = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(desc(Message.sent_at), desc(Message.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def count_by_chat(self, chat_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
        )
        return result.scalar_one()

    async def latest_in_chat(self, chat_id: int) -> Optional[Message]:
        messages = await self.list_by_chat(chat_id, page=1, limit=1)
        return messages[0] if messages else None

    async def count_unread(self, chat_id: int, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Message)
            .where(
                Message.chat_id == chat_id,
                Message.sender_id != user_id,
                Message.read_at.is_(None),
            )
        )
        return result.scalar_one()

    async def mark_as_read(self, message_id: int) -> Message:
        # the first reader wins, later calls keep the stored timestamp
        await self.db.execute(
            update(Message)
            .where(Message.id == message_id, Message.read_at.is_(None))
            .values(read_at=utcnow())
        )
        await self.db.commit()
        return await self.get_by_id(message_id)

    async def mark_as_delivered(self, message_id: int) -> Message:
        """Reserved transition: kept for the data model, the live protocol never calls it."""
        await self.db.execute(
            update(Message)
            .where(Message.id == message_id, Message.delivered_at.is_(None))
            .values(delivered_at=utcnow())
        )
        await self.db.commit()
        return await self.get_by_id(message_id)

    async def mark_read_by(self, message_id: int, user_id: int) -> Tuple[Message, Chat]:
        """Read-receipt rules shared by the socket and HTTP paths."""
        message = await self.get_by_id(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        if message.sender_id == user_id:
            raise ValidationError("Cannot mark your own message as read")

        result = await self.db.execute(select(Chat).where(Chat.id == message.chat_id))
        chat = result.scalar_one_or_none()
        if chat is None or not chat.has_participant(user_id):
            raise ForbiddenError("You are not part of this chat")

        message = await self.mark_as_read(message_id)
        return message, chat
