"""Hands facts raised by HTTP endpoints to the live delivery path.

Messages and receipts created over HTTP (image uploads, the mark-read
endpoint) are already persisted when published here. The bridge has exactly
one consumer, attached at application startup; it makes one delivery attempt
per fact. Without a consumer the fact is logged and dropped: clients still
find the persisted data on their next fetch.
"""
from __future__ import annotations

import logging
from typing import Annotated, Awaitable, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.core.timestamps import UTCDateTime
from app.schemas.events import (
    ImageMessagePayload,
    MediaItem,
    MessagePayload,
    SenderProfile,
    TextMessagePayload,
)

logger = logging.getLogger(__name__)


class MessageCreated(BaseModel):
    kind: Literal["message_created"] = "message_created"
    message_id: int
    chat_id: int
    sender: SenderProfile
    content: str
    type: Literal["text", "image"]
    media: List[MediaItem] = []
    sent_at: UTCDateTime
    other_user_id: int

    def to_payload(self) -> MessagePayload:
        common = dict(
            id=self.message_id,
            content=self.content,
            sender_id=self.sender.id,
            chat_id=self.chat_id,
            sent_at=self.sent_at,
            sender=self.sender,
        )
        if self.type == "image":
            return ImageMessagePayload(media=self.media, **common)
        return TextMessagePayload(**common)


class MessageRead(BaseModel):
    kind: Literal["message_read"] = "message_read"
    message_id: int
    chat_id: int
    read_by: int
    read_at: UTCDateTime
    sender_id: int


class ChatCreated(BaseModel):
    kind: Literal["chat_created"] = "chat_created"
    chat_id: int
    user1_id: int
    user2_id: int
    created_at: UTCDateTime


ChatFact = Annotated[Union[MessageCreated, MessageRead, ChatCreated], Field(discriminator="kind")]

FactConsumer = Callable[[ChatFact], Awaitable[None]]


class ChatEventBridge:
    def __init__(self) -> None:
        self._consumer: Optional[FactConsumer] = None

    @property
    def attached(self) -> bool:
        return self._consumer is not None

    def attach(self, consumer: FactConsumer) -> None:
        if self._consumer is not None and self._consumer != consumer:
            raise RuntimeError("Chat event bridge already has a consumer")
        self._consumer = consumer
        logger.info("Chat event bridge consumer attached")

    def detach(self) -> None:
        self._consumer = None

    async def publish(self, fact: ChatFact) -> bool:
        consumer = self._consumer
        if consumer is None:
            logger.warning("No consumer attached, dropping %s for chat %s", fact.kind, fact.chat_id)
            return False
        logger.info("Publishing %s for chat %s", fact.kind, fact.chat_id)
        try:
            await consumer(fact)
        except Exception:  # noqa: BLE001
            logger.exception("Delivery of %s for chat %s failed", fact.kind, fact.chat_id)
            return False
        return True


chat_events = ChatEventBridge()
