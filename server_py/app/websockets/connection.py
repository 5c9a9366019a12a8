from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Set, Union

from fastapi import WebSocket

from app.schemas.events import EventPayload, SenderProfile

logger = logging.getLogger(__name__)


class ChatConnection:
    """One authenticated socket plus the chat rooms it has joined.

    ``chats`` belongs to the handler task of this socket; only that task
    mutates it.
    """

    def __init__(self, websocket: WebSocket, user: SenderProfile) -> None:
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user = user
        self.chats: Set[int] = set()
        self.closed = False

    @property
    def user_id(self) -> int:
        return self.user.id

    async def send(self, event: str, payload: Union[EventPayload, Dict[str, Any]]) -> bool:
        if self.closed:
            return False
        data = payload.dump() if isinstance(payload, EventPayload) else payload
        try:
            await self.websocket.send_json({"type": event, "data": data})
        except Exception:  # noqa: BLE001
            logger.warning("Dropping %s for user %s: socket %s is gone", event, self.user_id, self.id)
            self.closed = True
            return False
        return True

    def __repr__(self) -> str:
        return f"<ChatConnection {self.id} user={self.user_id}>"
