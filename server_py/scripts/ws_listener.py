"""Connects with the token in the first frame and prints every event.

    python scripts/ws_listener.py TOKEN [CHAT_ID]
"""
import asyncio
import json
import sys

import websockets

SERVER = "ws://127.0.0.1:4001/ws/chat"


async def main(token: str, chat_id=None) -> None:
    async with websockets.connect(SERVER) as websocket:
        await websocket.send(json.dumps({"token": token}))
        if chat_id is not None:
            await websocket.send(json.dumps({"type": "join_chat", "data": {"chatId": chat_id}}))
        print("Подключено к /ws/chat, ожидаем события...")
        while True:
            try:
                raw = await asyncio.wait_for(websocket.recv(), timeout=60)
            except asyncio.TimeoutError:
                print("Таймаут ожидания сообщения")
                return
            frame = json.loads(raw)
            print(f"{frame['type']}: {frame['data']}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        raise SystemExit("usage: ws_listener.py TOKEN [CHAT_ID]")
    asyncio.run(main(sys.argv[1], int(sys.argv[2]) if len(sys.argv) > 2 else None))
