from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_auth
from app.core.exceptions import NotFoundError
from app.models.user import User
from app.schemas.user import OnlineUsers, User as UserSchema, UserPresence
from app.services.user import UserService
from app.websockets.chat_ws import presence

router = APIRouter()

@router.get("/me", response_model=UserSchema)
async def get_current_user_profile(
    current_user: User = Depends(require_auth)
):
    """Получение профиля текущего пользователя"""
    return current_user

@router.get("/online", response_model=OnlineUsers)
async def get_online_users(
    current_user: User = Depends(require_auth),
):
    """Кто сейчас подключен к чату (по реестру присутствия)."""
    users = await presence.online_users()
    return OnlineUsers(count=len(users), users=sorted(users))

@router.get("/{user_id}", response_model=UserPresence)
async def get_user(
    user_id: int,
    current_user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    """Публичный профиль пользователя и его статус онлайн"""
    user = await UserService(db).get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")

    return UserPresence(
        id=user.id,
        name=user.name,
        avatar=user.avatar,
        is_online=await presence.is_online(user.id),
    )
