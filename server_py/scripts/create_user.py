"""Creates (or finds) a user by email and prints a token for it.

    python scripts/create_user.py alice@campus.edu "Alice"
"""
import asyncio
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from app.core.database import AsyncSessionLocal
from app.core.init_db import init_db
from app.services.auth import AuthService
from app.services.user import UserService


async def main(email: str, name: str) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        users = UserService(session)
        user = await users.get_by_email(email)
        if user is None:
            user = await users.create(email=email, name=name)
            print(f"Created user {user.id} <{email}>")
        else:
            print(f"User {user.id} <{email}> already exists")
        print(AuthService(session).create_token(user.id))


if __name__ == "__main__":
    if len(sys.argv) < 3:
        raise SystemExit("usage: create_user.py EMAIL NAME")
    asyncio.run(main(sys.argv[1], sys.argv[2]))
