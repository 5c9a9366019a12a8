from __future__ import annotations

import asyncio
from typing import Dict, Generic, Hashable, List, Optional, TypeVar

ConnectionT = TypeVar("ConnectionT", bound=Hashable)


class PresenceRegistry(Generic[ConnectionT]):
    """user id <-> live connection, at most one connection per user.

    Both maps change together under one lock. Nothing awaits while holding it,
    so every operation is O(1). A second connection for the same user replaces
    the first (last writer wins); the replaced one no longer receives unicasts.
    """

    def __init__(self) -> None:
        self._user_connections: Dict[int, ConnectionT] = {}
        self._connection_users: Dict[ConnectionT, int] = {}
        self._lock = asyncio.Lock()

    async def register(self, user_id: int, connection: ConnectionT) -> Optional[ConnectionT]:
        """Returns the connection that was replaced, if any."""
        async with self._lock:
            previous = self._user_connections.get(user_id)
            if previous is not None and previous != connection:
                self._connection_users.pop(previous, None)
            self._user_connections[user_id] = connection
            self._connection_users[connection] = user_id
            return previous if previous != connection else None

    async def unregister(self, connection: ConnectionT) -> bool:
        """Safe to repeat. Leaves a newer connection of the same user alone."""
        async with self._lock:
            user_id = self._connection_users.pop(connection, None)
            if user_id is None:
                return False
            if self._user_connections.get(user_id) == connection:
                self._user_connections.pop(user_id, None)
            return True

    async def lookup(self, user_id: int) -> Optional[ConnectionT]:
        async with self._lock:
            return self._user_connections.get(user_id)

    async def is_online(self, user_id: int) -> bool:
        async with self._lock:
            return user_id in self._user_connections

    async def count(self) -> int:
        async with self._lock:
            return len(self._user_connections)

    async def online_users(self) -> List[int]:
        async with self._lock:
            return list(self._user_connections)

    async def clear(self) -> None:
        """Forgets every connection, as after a process restart."""
        async with self._lock:
            self._user_connections.clear()
            self._connection_users.clear()
