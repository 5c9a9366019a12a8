"""Socket frames and the typed payloads carried by them.

Frames are ``{"type": <event>, "data": {...}}`` in both directions. Outgoing
payloads serialize with camelCase keys and leave out fields that are ``None``,
so optional keys such as ``tempId`` or ``media`` only appear on the variants
that carry them.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.core.timestamps import UTCDateTime


class WsInbound(BaseModel):
    """Client -> Server."""

    type: str
    data: Dict[str, Any] = {}


# Client -> Server payloads

class ChatRef(BaseModel):
    chat_id: int = Field(alias="chatId")

    model_config = {"populate_by_name": True}


class SendMessage(ChatRef):
    content: Optional[str] = None
    temp_id: Optional[str] = Field(None, alias="tempId")


class MarkMessageRead(BaseModel):
    message_id: int = Field(alias="messageId")

    model_config = {"populate_by_name": True}


# Server -> Client payloads

class EventPayload(BaseModel):
    model_config = {"populate_by_name": True}

    def dump(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SenderProfile(EventPayload):
    id: int
    name: str
    avatar: Optional[str] = None


class MediaItem(EventPayload):
    id: int
    image_id: str = Field(alias="imageId")
    url: str
    message_id: int = Field(alias="messageId")


class Connected(EventPayload):
    user_id: int = Field(alias="userId")
    message: str = "Connected successfully"


class JoinedChat(EventPayload):
    chat_id: int = Field(alias="chatId")
    other_user: SenderProfile = Field(alias="otherUser")
    conversation_type: Literal["one-to-one"] = Field("one-to-one", alias="conversationType")


class LeftChat(EventPayload):
    chat_id: int = Field(alias="chatId")


class PartnerOnline(EventPayload):
    user_id: int = Field(alias="userId")
    user_name: str = Field(alias="userName")
    avatar: Optional[str] = None


class PartnerOffline(EventPayload):
    user_id: int = Field(alias="userId")
    user_name: str = Field(alias="userName")


class _MessageBase(EventPayload):
    id: int
    content: str
    sender_id: int = Field(alias="senderId")
    chat_id: int = Field(alias="chatId")
    sent_at: UTCDateTime = Field(alias="sentAt")
    sender: SenderProfile


class TextMessagePayload(_MessageBase):
    type: Literal["text"] = "text"
    temp_id: Optional[str] = Field(None, alias="tempId")


class ImageMessagePayload(_MessageBase):
    type: Literal["image"] = "image"
    media: List[MediaItem] = Field(min_length=1)


MessagePayload = Union[TextMessagePayload, ImageMessagePayload]


class MessageNotification(EventPayload):
    chat_id: int = Field(alias="chatId")
    sender_id: int = Field(alias="senderId")
    sender_name: str = Field(alias="senderName")
    sender_avatar: Optional[str] = Field(None, alias="senderAvatar")
    preview: str
    timestamp: UTCDateTime
    type: Literal["text", "image"]


class MessageReadReceipt(EventPayload):
    message_id: int = Field(alias="messageId")
    read_by: int = Field(alias="readBy")
    read_at: UTCDateTime = Field(alias="readAt")


class UserTyping(EventPayload):
    user_id: int = Field(alias="userId")
    user_name: str = Field(alias="userName")
    chat_id: int = Field(alias="chatId")


class UserStoppedTyping(EventPayload):
    user_id: int = Field(alias="userId")
    chat_id: int = Field(alias="chatId")


class ErrorEvent(EventPayload):
    message: str


class MessageErrorEvent(EventPayload):
    temp_id: Optional[str] = Field(None, alias="tempId")
    error: str
