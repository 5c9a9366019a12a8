from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.user import User
from app.core.exceptions import AuthError
from app.core.security import create_access_token, decode_access_token


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Получает пользователя по ID"""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def authenticate(self, token: Optional[str]) -> User:
        """Resolves a bearer/cookie token to an active user or raises ``AuthError``."""
        user_id = decode_access_token(token or "")
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise AuthError("Authentication error: User not found")
        if not user.is_active:
            raise AuthError("Authentication error: User is inactive")
        return user

    def create_token(self, user_id: int) -> str:
        """Создает JWT токен для пользователя"""
        return create_access_token(data={"sub": str(user_id)})
