import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import AuthError


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Подписывает JWT с ``exp`` и уникальным ``jti``."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """Verify signature and expiry, return the user id from ``sub``."""
    if not token:
        raise AuthError("Authentication error: No token provided")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise AuthError("Authentication error: Token expired") from exc
    except JWTError as exc:
        raise AuthError("Authentication error: Invalid token") from exc

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthError("Authentication error: Invalid token payload")
    try:
        return int(user_id)
    except (TypeError, ValueError) as exc:
        raise AuthError("Authentication error: Invalid token payload") from exc


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
