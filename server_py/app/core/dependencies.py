from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthError
from app.services.auth import AuthService
from app.models.user import User

# Определяем схему безопасности
security = HTTPBearer(auto_error=False)

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """
    Текущий пользователь из bearer-токена или cookie.
    Возвращает None если токен не предоставлен или невалиден (для опциональной авторизации).
    """
    token = credentials.credentials if credentials else request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        return None

    try:
        return await AuthService(db).authenticate(token)
    except AuthError:
        return None

async def require_auth(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """
    Dependency для эндпоинтов, которые обязательно требуют авторизации.
    """
    if current_user is None:
        raise AuthError("Authentication required")
    return current_user
