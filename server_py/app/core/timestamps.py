from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def utcnow() -> datetime:
    """Текущее время в UTC, без tzinfo: так его хранит SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# stored values are naive UTC; on the wire they always carry the offset
UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]
