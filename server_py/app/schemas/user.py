from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from app.core.timestamps import UTCDateTime


# Публичный профиль: то, что видит собеседник
class PublicUser(BaseModel):
    id: int
    name: str
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


# Схема для ответа с данными пользователя
class User(PublicUser):
    email: EmailStr
    role: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    is_verified: bool = Field(False, alias="isVerified")
    created_at: UTCDateTime = Field(alias="createdAt")

    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
    }


class UserPresence(PublicUser):
    is_online: bool = Field(alias="isOnline")

    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
    }


class OnlineUsers(BaseModel):
    count: int
    users: List[int]
