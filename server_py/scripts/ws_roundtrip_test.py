"""Two live clients against a running server: B joins, A sends, both print.

    python scripts/ws_roundtrip_test.py TOKEN_A TOKEN_B CHAT_ID
"""
import asyncio
import json
import sys

import websockets

SERVER = "ws://127.0.0.1:4001/ws/chat"


async def expect(ws, event: str) -> dict:
    while True:
        frame = json.loads(await asyncio.wait_for(ws.recv(), timeout=5))
        print(f"<- {frame['type']}: {frame['data']}")
        if frame["type"] == event:
            return frame["data"]


async def run_roundtrip(token_a: str, token_b: str, chat_id: int) -> None:
    async with websockets.connect(f"{SERVER}?token={token_a}") as a_ws, \
            websockets.connect(f"{SERVER}?token={token_b}") as b_ws:
        await expect(a_ws, "connected")
        await expect(b_ws, "connected")

        for ws in (a_ws, b_ws):
            await ws.send(json.dumps({"type": "join_chat", "data": {"chatId": chat_id}}))
            await expect(ws, "joined_chat")

        await a_ws.send(json.dumps({
            "type": "send_message",
            "data": {"chatId": chat_id, "content": "roundtrip", "tempId": "rt-1"},
        }))
        sent = await expect(a_ws, "new_message")
        received = await expect(b_ws, "new_message")
        assert sent["id"] == received["id"]

        await b_ws.send(json.dumps({"type": "mark_message_read", "data": {"messageId": received["id"]}}))
        await expect(a_ws, "message_read")


if __name__ == "__main__":
    if len(sys.argv) != 4:
        raise SystemExit("usage: ws_roundtrip_test.py TOKEN_A TOKEN_B CHAT_ID")
    asyncio.run(run_roundtrip(sys.argv[1], sys.argv[2], int(sys.argv[3])))
