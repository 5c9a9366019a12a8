"""Error taxonomy shared by the HTTP endpoints and the socket protocol.

Every error carries the message shown to the client, the HTTP status used when
it escapes an endpoint, and optionally the client's correlation id (``tempId``)
so an optimistic UI can roll back exactly the failed item.
"""
from __future__ import annotations

from typing import Optional


class ChatError(Exception):
    status_code: int = 400

    def __init__(self, message: str, *, temp_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.temp_id = temp_id


class AuthError(ChatError):
    """Credential missing, malformed, invalid, expired, or the user is gone."""

    status_code = 401


class NotFoundError(ChatError):
    status_code = 404


class ForbiddenError(ChatError):
    status_code = 403


class ValidationError(ChatError):
    status_code = 400


class PersistenceError(ChatError):
    """The store rejected or failed a read/write. Never retried."""

    status_code = 500
