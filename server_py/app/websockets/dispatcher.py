from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Set

from app.core.config import settings
from app.schemas.events import (
    EventPayload,
    ImageMessagePayload,
    MessageNotification,
    MessagePayload,
    MessageReadReceipt,
)
from app.websockets.bridge import ChatCreated, ChatFact, MessageCreated, MessageRead
from app.websockets.connection import ChatConnection
from app.websockets.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class ChatRooms:
    """chat id -> connections subscribed to that chat's broadcasts."""

    def __init__(self) -> None:
        self._members: Dict[int, Set[ChatConnection]] = {}
        self._lock = asyncio.Lock()

    async def join(self, chat_id: int, connection: ChatConnection) -> None:
        async with self._lock:
            self._members.setdefault(chat_id, set()).add(connection)
        connection.chats.add(chat_id)

    async def leave(self, chat_id: int, connection: ChatConnection) -> bool:
        connection.chats.discard(chat_id)
        async with self._lock:
            members = self._members.get(chat_id)
            if not members or connection not in members:
                return False
            members.discard(connection)
            if not members:
                self._members.pop(chat_id, None)
            return True

    async def members(self, chat_id: int) -> List[ChatConnection]:
        async with self._lock:
            members = self._members.get(chat_id)
            return list(members) if members else []

    async def clear(self) -> None:
        async with self._lock:
            for members in self._members.values():
                for connection in members:
                    connection.chats.clear()
            self._members.clear()


def message_preview(payload: MessagePayload) -> str:
    if isinstance(payload, ImageMessagePayload):
        count = len(payload.media) or 1
        return f"📷 Sent {count} image{'s' if count > 1 else ''}"
    limit = settings.NOTIFICATION_PREVIEW_LENGTH
    content = payload.content
    return content[:limit] + ("..." if len(content) > limit else "")


def build_notification(payload: MessagePayload) -> MessageNotification:
    return MessageNotification(
        chat_id=payload.chat_id,
        sender_id=payload.sender_id,
        sender_name=payload.sender.name,
        sender_avatar=payload.sender.avatar,
        preview=message_preview(payload),
        timestamp=payload.sent_at,
        type=payload.type,
    )


class DeliveryDispatcher:
    """The only write surface towards clients: unicast and room broadcast.

    Delivery is live-only and best effort. An offline user gets nothing
    queued; persisted data is picked up on the next fetch or join.
    """

    def __init__(self, presence: PresenceRegistry[ChatConnection], rooms: ChatRooms) -> None:
        self.presence = presence
        self.rooms = rooms

    async def subscribe(self, chat_id: int, connection: ChatConnection) -> None:
        await self.rooms.join(chat_id, connection)

    async def unsubscribe(self, chat_id: int, connection: ChatConnection) -> bool:
        return await self.rooms.leave(chat_id, connection)

    async def unicast(self, user_id: int, event: str, payload: EventPayload) -> bool:
        connection = await self.presence.lookup(user_id)
        if connection is None:
            return False
        return await connection.send(event, payload)

    async def broadcast(
        self,
        chat_id: int,
        event: str,
        payload: EventPayload,
        exclude: Optional[ChatConnection] = None,
    ) -> int:
        targets = [c for c in await self.rooms.members(chat_id) if c is not exclude]
        if not targets:
            return 0
        data = payload.dump()
        results = await asyncio.gather(*(c.send(event, data) for c in targets))
        return sum(1 for delivered in results if delivered)

    async def deliver_message(self, payload: MessagePayload, recipient_id: int) -> None:
        """Room broadcast, then a notification if the recipient is online elsewhere."""
        await self.broadcast(payload.chat_id, "new_message", payload)

        connection = await self.presence.lookup(recipient_id)
        if connection is not None and payload.chat_id not in connection.chats:
            await connection.send("new_message_notification", build_notification(payload))

    async def deliver_read_receipt(self, sender_id: int, receipt: MessageReadReceipt) -> bool:
        delivered = await self.unicast(sender_id, "message_read", receipt)
        if not delivered:
            logger.debug("Sender %s offline, read receipt for %s dropped", sender_id, receipt.message_id)
        return delivered

    async def handle_fact(self, fact: ChatFact) -> None:
        """Consumer of the chat event bridge."""
        if isinstance(fact, MessageCreated):
            await self.deliver_message(fact.to_payload(), fact.other_user_id)
            logger.info("Delivered message %s from HTTP path", fact.message_id)
        elif isinstance(fact, MessageRead):
            receipt = MessageReadReceipt(
                message_id=fact.message_id,
                read_by=fact.read_by,
                read_at=fact.read_at,
            )
            await self.deliver_read_receipt(fact.sender_id, receipt)
        elif isinstance(fact, ChatCreated):
            logger.info("New chat %s between %s and %s", fact.chat_id, fact.user1_id, fact.user2_id)
