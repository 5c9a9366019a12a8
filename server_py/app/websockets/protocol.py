"""Per-connection chat protocol.

A ``ChatSession`` owns one authenticated connection and handles its inbound
events one at a time: join/leave of chat rooms, text messages, read receipts
and typing signals. Every failure is turned into exactly one ``error`` (or
``message_error`` for sends, carrying the client's ``tempId``) and the
connection stays open.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError as PayloadError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import session_scope
from app.core.exceptions import ChatError, ForbiddenError, NotFoundError, PersistenceError
from app.schemas.events import (
    ChatRef,
    ErrorEvent,
    JoinedChat,
    LeftChat,
    MarkMessageRead,
    MessageErrorEvent,
    MessageReadReceipt,
    PartnerOffline,
    PartnerOnline,
    SendMessage,
    TextMessagePayload,
    UserStoppedTyping,
    UserTyping,
    WsInbound,
)
from app.services.chat import ChatService
from app.services.message import MessageService, clean_content
from app.services.user import UserService, public_profile
from app.websockets.connection import ChatConnection
from app.websockets.dispatcher import DeliveryDispatcher

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

# what the client sees when a handler fails unexpectedly
_FAILURES = {
    "join_chat": "Failed to join conversation",
    "leave_chat": "Failed to leave conversation",
    "send_message": "Failed to send message",
    "mark_message_read": "Failed to mark message as read",
    "typing_start": "Failed to send typing indicator",
    "typing_stop": "Failed to send typing indicator",
}


class ChatSession:
    def __init__(
        self,
        connection: ChatConnection,
        dispatcher: DeliveryDispatcher,
        *,
        session_factory: SessionFactory = session_scope,
    ) -> None:
        self.connection = connection
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[None]]] = {
            "join_chat": self.join,
            "leave_chat": self.leave,
            "send_message": self.send,
            "mark_message_read": self.mark_read,
            "typing_start": self.typing_start,
            "typing_stop": self.typing_stop,
        }

    @property
    def user(self):
        return self.connection.user

    async def handle(self, frame: Any) -> None:
        try:
            inbound = WsInbound.model_validate(frame)
        except PayloadError:
            await self.connection.send("error", ErrorEvent(message="Malformed frame"))
            return

        handler = self._handlers.get(inbound.type)
        if handler is None:
            await self.connection.send("error", ErrorEvent(message=f"Unknown event: {inbound.type}"))
            return

        temp_id = inbound.data.get("tempId")
        temp_id = temp_id if isinstance(temp_id, str) else None
        try:
            await handler(inbound.data)
        except PersistenceError as exc:
            logger.exception("Store failure on %s for user %s: %s", inbound.type, self.user.id, inbound.data)
            await self._report(inbound.type, exc.message, exc.temp_id or temp_id)
        except ChatError as exc:
            logger.info("%s rejected for user %s: %s", inbound.type, self.user.id, exc.message)
            await self._report(inbound.type, exc.message, exc.temp_id or temp_id)
        except PayloadError:
            await self._report(inbound.type, f"Invalid payload for {inbound.type}", temp_id)
        except Exception:  # noqa: BLE001
            logger.exception("Error handling %s for user %s", inbound.type, self.user.id)
            await self._report(inbound.type, _FAILURES[inbound.type], temp_id)

    async def _report(self, event: str, message: str, temp_id: Optional[str]) -> None:
        if event == "send_message":
            await self.connection.send("message_error", MessageErrorEvent(temp_id=temp_id, error=message))
        else:
            await self.connection.send("error", ErrorEvent(message=message))

    async def join(self, data: Dict[str, Any]) -> None:
        chat_id = ChatRef.model_validate(data).chat_id
        async with self.session_factory() as db:
            chat = await ChatService(db).get_by_id(chat_id)
            if chat is None:
                raise NotFoundError("One-to-one conversation not found")
            if not chat.has_participant(self.user.id):
                raise ForbiddenError("This is a private conversation between two individuals")
            other_user = await UserService(db).get_by_id(chat.other_participant(self.user.id))
            if other_user is None:
                raise NotFoundError("Other participant not found")

        await self.dispatcher.subscribe(chat_id, self.connection)
        await self.connection.send(
            "joined_chat",
            JoinedChat(chat_id=chat_id, other_user=public_profile(other_user)),
        )
        await self.dispatcher.broadcast(
            chat_id,
            "conversation_partner_online",
            PartnerOnline(user_id=self.user.id, user_name=self.user.name, avatar=self.user.avatar),
            exclude=self.connection,
        )
        logger.info("User %s joined chat %s", self.user.id, chat_id)

    async def leave(self, data: Dict[str, Any]) -> None:
        chat_id = ChatRef.model_validate(data).chat_id
        if chat_id in self.connection.chats:
            await self.dispatcher.broadcast(
                chat_id,
                "conversation_partner_offline",
                PartnerOffline(user_id=self.user.id, user_name=self.user.name),
                exclude=self.connection,
            )
            await self.dispatcher.unsubscribe(chat_id, self.connection)
            logger.info("User %s left chat %s", self.user.id, chat_id)
        await self.connection.send("left_chat", LeftChat(chat_id=chat_id))

    async def send(self, data: Dict[str, Any]) -> None:
        request = SendMessage.model_validate(data)
        content = clean_content(request.content, temp_id=request.temp_id)

        # one commit for the message and the chat bump
        async with self.session_factory() as db:
            chats = ChatService(db)
            chat = await chats.require_membership(request.chat_id, self.user.id, temp_id=request.temp_id)
            message = await MessageService(db).create(
                chat_id=chat.id,
                sender_id=self.user.id,
                content=content,
                auto_commit=False,
            )
            await chats.touch(chat.id, at=message.sent_at, auto_commit=False)

        payload = TextMessagePayload(
            id=message.id,
            content=message.content,
            sender_id=self.user.id,
            chat_id=chat.id,
            sent_at=message.sent_at,
            sender=self.user,
            temp_id=request.temp_id,
        )
        await self.dispatcher.deliver_message(payload, chat.other_participant(self.user.id))
        logger.info("User %s sent message %s in chat %s", self.user.id, message.id, chat.id)

    async def mark_read(self, data: Dict[str, Any]) -> None:
        message_id = MarkMessageRead.model_validate(data).message_id
        async with self.session_factory() as db:
            message, _ = await MessageService(db).mark_read_by(message_id, self.user.id)

        receipt = MessageReadReceipt(message_id=message.id, read_by=self.user.id, read_at=message.read_at)
        await self.dispatcher.deliver_read_receipt(message.sender_id, receipt)
        logger.info("Message %s marked as read by user %s", message.id, self.user.id)

    async def typing_start(self, data: Dict[str, Any]) -> None:
        chat_id = ChatRef.model_validate(data).chat_id
        if chat_id not in self.connection.chats:
            return
        await self.dispatcher.broadcast(
            chat_id,
            "user_typing",
            UserTyping(user_id=self.user.id, user_name=self.user.name, chat_id=chat_id),
            exclude=self.connection,
        )

    async def typing_stop(self, data: Dict[str, Any]) -> None:
        chat_id = ChatRef.model_validate(data).chat_id
        if chat_id not in self.connection.chats:
            return
        await self.dispatcher.broadcast(
            chat_id,
            "user_stopped_typing",
            UserStoppedTyping(user_id=self.user.id, chat_id=chat_id),
            exclude=self.connection,
        )

    async def disconnect(self) -> None:
        """Drops presence, then tells every joined room the user went away."""
        await self.dispatcher.presence.unregister(self.connection)
        offline = PartnerOffline(user_id=self.user.id, user_name=self.user.name)
        for chat_id in list(self.connection.chats):
            await self.dispatcher.broadcast(chat_id, "conversation_partner_offline", offline, exclude=self.connection)
            await self.dispatcher.unsubscribe(chat_id, self.connection)
        self.connection.closed = True
