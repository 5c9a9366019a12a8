"""Opens (or reopens) a chat with another user over HTTP and prints its id.

    python scripts/open_chat.py TOKEN OTHER_USER_ID
"""
import json
import sys
import urllib.request

BASE_URL = "http://127.0.0.1:4001"


def post(path: str, payload: dict, token: str) -> dict:
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        f"{BASE_URL}{path}",
        data=data,
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        },
        method="POST",
    )
    with urllib.request.urlopen(req) as resp:
        body = resp.read().decode("utf-8")
        print(f"POST {path} -> {resp.status}\n{body}\n")
        return json.loads(body)


def main(token: str, other_user_id: int) -> None:
    opened = post("/api/v1/chats", {"otherUserId": other_user_id}, token)
    chat = opened.get("chat")
    if not chat:
        raise RuntimeError("Не удалось получить чат из ответа /chats")
    state = "новый" if opened.get("isNewChat") else "существующий"
    print(f"Чат {chat['id']} ({state}) с пользователем {other_user_id}")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        raise SystemExit("usage: open_chat.py TOKEN OTHER_USER_ID")
    main(sys.argv[1], int(sys.argv[2]))
