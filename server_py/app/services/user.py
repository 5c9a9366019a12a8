from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.user import User
from app.schemas.events import SenderProfile

class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Получение пользователя по ID"""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email"""
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def create(self, *, email: str, name: str, avatar: Optional[str] = None, is_active: bool = True) -> User:
        """Создание нового пользователя"""
        user = User(email=email, name=name, avatar=avatar, is_active=is_active)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user


def public_profile(user: User) -> SenderProfile:
    return SenderProfile(id=user.id, name=user.name, avatar=user.avatar)
