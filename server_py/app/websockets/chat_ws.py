from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.config import settings
from app.core.database import session_scope
from app.core.exceptions import AuthError, ChatError
from app.core.security import extract_bearer_token
from app.models.user import User
from app.schemas.events import Connected, ErrorEvent
from app.services.auth import AuthService
from app.services.user import public_profile
from app.websockets.connection import ChatConnection
from app.websockets.dispatcher import ChatRooms, DeliveryDispatcher
from app.websockets.presence import PresenceRegistry
from app.websockets.protocol import ChatSession

logger = logging.getLogger(__name__)

router = APIRouter()

# Process-wide realtime state; empty on every start.
presence: PresenceRegistry[ChatConnection] = PresenceRegistry()
rooms = ChatRooms()
dispatcher = DeliveryDispatcher(presence, rooms)

AUTH_FAILED_CLOSE_CODE = 4401


async def _read_socket_token(websocket: WebSocket) -> Optional[str]:
    if settings.SOCKET_AUTH_MODE == "cookie":
        return websocket.cookies.get(settings.AUTH_COOKIE_NAME)

    token = extract_bearer_token(websocket.headers.get("authorization"))
    if token:
        return token
    token = websocket.query_params.get("token")
    if token:
        return token

    # the handshake "auth" field: first frame {"token": "..."}
    try:
        init_payload = await websocket.receive_json()
    except (ValueError, KeyError) as exc:
        # KeyError: a binary frame has no "text"
        raise AuthError("Authentication error: Malformed credentials") from exc
    if not isinstance(init_payload, dict):
        raise AuthError("Authentication error: Malformed credentials")
    token = init_payload.get("token")
    return token if isinstance(token, str) else None


async def _authenticate(websocket: WebSocket) -> User:
    token = await _read_socket_token(websocket)
    if not token:
        raise AuthError("Authentication error: No token provided")
    async with session_scope() as session:
        return await AuthService(session).authenticate(token)


@router.websocket("/ws/chat")
async def chat_websocket(websocket: WebSocket) -> None:
    await websocket.accept()
    try:
        user = await _authenticate(websocket)
    except WebSocketDisconnect:
        return
    except AuthError as exc:
        logger.warning("Socket handshake rejected: %s", exc.message)
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason=exc.message)
        return
    except ChatError as exc:
        logger.exception("Socket handshake failed")
        await websocket.close(code=1011, reason=exc.message)
        return

    connection = ChatConnection(websocket, public_profile(user))
    session = ChatSession(connection, dispatcher)
    replaced = await presence.register(user.id, connection)
    if replaced is not None:
        logger.info("User %s reconnected, %s no longer receives direct events", user.id, replaced)
    logger.info("User connected: %s (%s)", user.name, user.id)

    try:
        await connection.send("connected", Connected(user_id=user.id))
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                await connection.send("error", ErrorEvent(message="Malformed frame"))
                continue
            await session.handle(frame)
    except WebSocketDisconnect:
        pass
    except Exception:  # noqa: BLE001
        logger.exception("Chat websocket error for user %s", user.id)
        try:
            await websocket.close(code=1011)
        except Exception:  # noqa: BLE001
            pass
    finally:
        await session.disconnect()
        logger.info("User disconnected: %s (%s)", user.name, user.id)
