from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.timestamps import utcnow
from app.models.chat import Chat, make_pair_key
from app.models.user import User


class ChatService:
    """Чаты один-на-один: поиск, создание, список, отметка активности."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, chat_id: int) -> Optional[Chat]:
        result = await self.db.execute(select(Chat).where(Chat.id == chat_id))
        return result.scalar_one_or_none()

    async def find_by_users(self, user_a: int, user_b: int) -> Optional[Chat]:
        stmt = select(Chat).where(
            or_(
                and_(Chat.user1_id == user_a, Chat.user2_id == user_b),
                and_(Chat.user1_id == user_b, Chat.user2_id == user_a),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_membership(
        self,
        chat_id: int,
        user_id: int,
        *,
        temp_id: Optional[str] = None,
    ) -> Chat:
        chat = await self.get_by_id(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found", temp_id=temp_id)
        if not chat.has_participant(user_id):
            raise ForbiddenError("You are not part of this chat", temp_id=temp_id)
        return chat

    async def create_or_get(self, user_id: int, other_user_id: Optional[int]) -> Tuple[Chat, User, bool]:
        """Returns ``(chat, other_user, created)``; either ordering finds the same chat."""
        if other_user_id is None:
            raise ValidationError("Other user ID is required for private conversation")
        if other_user_id == user_id:
            raise ValidationError("Cannot create conversation with yourself")

        result = await self.db.execute(select(User).where(User.id == other_user_id))
        other_user = result.scalar_one_or_none()
        if other_user is None:
            raise NotFoundError("User not found")
        if not other_user.is_active:
            raise ValidationError("Cannot start chat with inactive user")

        existing = await self.find_by_users(user_id, other_user_id)
        if existing is not None:
            return existing, other_user, False

        chat = Chat(
            user1_id=user_id,
            user2_id=other_user_id,
            pair_key=make_pair_key(user_id, other_user_id),
        )
        self.db.add(chat)
        try:
            await self.db.commit()
        except IntegrityError:
            # a concurrent request created the pair first
            await self.db.rollback()
            existing = await self.find_by_users(user_id, other_user_id)
            if existing is None:
                raise
            await self.db.refresh(other_user)
            return existing, other_user, False
        await self.db.refresh(chat)
        return chat, other_user, True

    async def list_for_user(
        self,
        user_id: int,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Chat], int]:
        where = or_(Chat.user1_id == user_id, Chat.user2_id == user_id)
        total = (await self.db.execute(select(func.count()).select_from(Chat).where(where))).scalar_one()
        stmt = (
            select(Chat)
            .where(where)
            .order_by(desc(Chat.updated_at), desc(Chat.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars()), total

    async def touch(
        self,
        chat_id: int,
        *,
        at: Optional[datetime] = None,
        auto_commit: bool = True,
    ) -> None:
        """Bumps ``updated_at``, the "most recent activity" key of chat lists."""
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(updated_at=at or utcnow())
        )
        if auto_commit:
            await self.db.commit()
