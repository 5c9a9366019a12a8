"""Shared test setup: a throwaway SQLite database and media dir, users, tokens.

Import this module before anything from ``app`` so the settings pick up the
temporary paths.
"""
import asyncio
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="campus-chat-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["DATA_DIR"] = _TMP_DIR
os.environ["MEDIA_DIR"] = os.path.join(_TMP_DIR, "media")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SOCKET_AUTH_MODE"] = "bearer"

from app.core.database import AsyncSessionLocal  # noqa: E402
from app.core.init_db import drop_db, init_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.services.user import UserService  # noqa: E402


async def reset_database_async() -> None:
    await drop_db()
    await init_db()


def reset_database() -> None:
    asyncio.run(reset_database_async())


def reset_realtime_state() -> None:
    """Empties the process-wide presence registry and chat rooms."""
    from app.websockets.chat_ws import presence, rooms

    async def _clear():
        await rooms.clear()
        await presence.clear()

    asyncio.run(_clear())


async def create_user_async(email: str, name: str, *, avatar=None, is_active: bool = True) -> int:
    async with AsyncSessionLocal() as session:
        user = await UserService(session).create(email=email, name=name, avatar=avatar, is_active=is_active)
        return user.id


def create_user(email: str, name: str, *, avatar=None, is_active: bool = True) -> int:
    return asyncio.run(create_user_async(email, name, avatar=avatar, is_active=is_active))


def token_for(user_id: int) -> str:
    return create_access_token(data={"sub": str(user_id)})


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id)}"}


def socket_url(user_id: int) -> str:
    return f"/ws/chat?token={token_for(user_id)}"


def next_event(ws, expected: str) -> dict:
    """Reads one frame and checks its event name; returns the payload."""
    frame = ws.receive_json()
    assert frame["type"] == expected, f"expected {expected}, got {frame['type']}: {frame['data']}"
    return frame["data"]


def sync_point(ws) -> None:
    """Round-trips a no-op through the socket.

    Anything queued for ``ws`` before this call would be read instead of the
    confirmation, so it proves nothing else was delivered in between.
    """
    ws.send_json({"type": "leave_chat", "data": {"chatId": 999999}})
    data = next_event(ws, "left_chat")
    assert data == {"chatId": 999999}
