"""Local image store standing in for the hosted image provider.

The chat core only needs ``save_all(uploads) -> [StoredImage(id, url)]`` and
``discard(images)``; swapping in a remote provider means replacing this class,
nothing else.
"""
from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import anyio
from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredImage:
    id: str
    url: str
    path: Path


class ImageStorage:
    def __init__(
        self,
        directory: Optional[Path] = None,
        base_url: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> None:
        self.directory = Path(directory or settings.MEDIA_DIR)
        self.base_url = (base_url or settings.MEDIA_URL).rstrip("/")
        self.max_size = max_size or settings.MAX_IMAGE_SIZE

    async def _read_checked(self, upload: UploadFile) -> Tuple[str, bytes]:
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise ValidationError("File must be an image")

        data = await upload.read()
        if not data:
            raise ValidationError("Image file is empty")
        if len(data) > self.max_size:
            raise ValidationError(f"Image is too large (max {self.max_size // (1024 * 1024)}MB)")

        extension = Path(upload.filename or "").suffix.lower() or mimetypes.guess_extension(content_type) or ""
        return extension, data

    async def save_all(self, uploads: Sequence[UploadFile]) -> List[StoredImage]:
        """All or nothing: every upload is checked before the first write."""
        checked = [await self._read_checked(upload) for upload in uploads]

        target = anyio.Path(self.directory)
        await target.mkdir(parents=True, exist_ok=True)
        stored: List[StoredImage] = []
        try:
            for extension, data in checked:
                image_id = uuid.uuid4().hex
                filename = f"{image_id}{extension}"
                await (target / filename).write_bytes(data)
                stored.append(StoredImage(id=image_id, url=f"{self.base_url}/{filename}", path=self.directory / filename))
        except OSError:
            await self.discard(stored)
            raise
        return stored

    async def discard(self, images: Sequence[StoredImage]) -> None:
        """Удаляет уже записанные файлы, если сообщение так и не сохранилось."""
        for image in images:
            try:
                await anyio.Path(image.path).unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove orphaned image %s", image.path)


image_storage = ImageStorage()
