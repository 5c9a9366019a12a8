from __future__ import annotations

from typing import List

from sqlalchemy import asc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.media import Media


class MediaService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        *,
        message_id: int,
        image_id: str,
        url: str,
        auto_commit: bool = True,
    ) -> Media:
        media = Media(message_id=message_id, image_id=image_id, url=url)
        self.db.add(media)
        await self.db.flush()
        if auto_commit:
            await self.db.commit()
        return media

    async def list_by_message(self, message_id: int) -> List[Media]:
        result = await self.db.execute(
            select(Media).where(Media.message_id == message_id).order_by(asc(Media.id))
        )
        return list(result.scalars())
