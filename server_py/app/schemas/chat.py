from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.core.timestamps import UTCDateTime
from app.schemas.user import PublicUser


_camel = {
    "from_attributes": True,
    "populate_by_name": True,
}


class ChatCreate(BaseModel):
    other_user_id: Optional[int] = Field(None, alias="otherUserId")

    model_config = {"populate_by_name": True}


class MediaResponse(BaseModel):
    id: int
    image_id: str = Field(alias="imageId")
    url: str
    message_id: int = Field(alias="messageId")

    model_config = _camel


class MessageResponse(BaseModel):
    id: int
    chat_id: int = Field(alias="chatId")
    sender_id: int = Field(alias="senderId")
    content: str
    sent_at: UTCDateTime = Field(alias="sentAt")
    delivered_at: Optional[UTCDateTime] = Field(None, alias="deliveredAt")
    read_at: Optional[UTCDateTime] = Field(None, alias="readAt")
    media: List[MediaResponse] = []

    model_config = _camel


class SentImageMessage(MessageResponse):
    type: Literal["image"] = "image"
    sender: PublicUser


class ChatResponse(BaseModel):
    id: int
    user1_id: int = Field(alias="user1Id")
    user2_id: int = Field(alias="user2Id")
    created_at: UTCDateTime = Field(alias="createdAt")
    updated_at: UTCDateTime = Field(alias="updatedAt")
    type: Literal["one-to-one"] = "one-to-one"
    participant_count: int = Field(2, alias="participantCount")

    model_config = _camel


class ChatOpened(BaseModel):
    chat: ChatResponse
    other_user: PublicUser = Field(alias="otherUser")
    recent_messages: List[MessageResponse] = Field(alias="recentMessages")
    is_new_chat: bool = Field(alias="isNewChat")

    model_config = _camel


class ChatListItem(ChatResponse):
    other_user: Optional[PublicUser] = Field(None, alias="otherUser")
    latest_message: Optional[MessageResponse] = Field(None, alias="latestMessage")
    unread_count: int = Field(0, alias="unreadCount")


class ChatList(BaseModel):
    items: List[ChatListItem]
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")

    model_config = _camel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")

    model_config = _camel


class MessagePage(BaseModel):
    messages: List[MessageResponse]
    pagination: Pagination
    chat: ChatResponse


class MessageReadResponse(BaseModel):
    ok: bool = True
    message: MessageResponse
