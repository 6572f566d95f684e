"""Upload orchestration: store media, generate metadata, persist a MediaRecord.

Items are pulled from a shared queue by UPLOAD_CONCURRENCY workers, so a slow
item only occupies its own worker instead of holding back a whole batch.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from typing import Callable, Optional

from sqlalchemy.orm import Session

from analysis.metadata import MetadataGenerator
from config import Settings
from errors import InvalidUploadError
from minio_client import bucket_for, build_object_name, public_url, put_media, remove_media
from models import MediaRecord

logger = logging.getLogger(__name__)

PENDING = "pending"
UPLOADING = "uploading"
PROCESSING = "processing"
COMPLETE = "complete"
ERROR = "error"


@dataclass
class UploadItem:
    filename: str
    content_type: str
    data: bytes
    media_type: str
    status: str = PENDING
    error: Optional[str] = None
    media_id: Optional[str] = None

    def summary(self) -> dict:
        return {
            "filename": self.filename,
            "media_type": self.media_type,
            "status": self.status,
            "error": self.error,
            "media_id": self.media_id,
        }


def classify_upload(filename: str, content_type: str, size: int, config: Settings) -> str:
    """Return "photo" or "video", or raise InvalidUploadError."""
    content_type = content_type or ""
    if content_type.startswith("video/"):
        media_type, limit = "video", config.MAX_VIDEO_BYTES
    elif content_type.startswith("image/"):
        media_type, limit = "photo", config.MAX_PHOTO_BYTES
    else:
        raise InvalidUploadError(f"{filename} não é uma foto ou vídeo válido.")

    if size > limit:
        raise InvalidUploadError(
            f"{filename} excede o limite de {limit // (1024 * 1024)}MB."
        )
    return media_type


def parse_manual_tags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


class UploadOrchestrator:
    def __init__(self, storage_client, generator: MetadataGenerator,
                 session_factory: Callable[[], Session], config: Settings):
        self.storage = storage_client
        self.generator = generator
        self.session_factory = session_factory
        self.concurrency = max(1, config.UPLOAD_CONCURRENCY)

    async def run(
        self,
        items: list[UploadItem],
        event_id: Optional[str] = None,
        manual_description: Optional[str] = None,
        manual_tags: Optional[str] = None,
        event_date: Optional[date] = None,
        uploaded_by: Optional[str] = None,
    ) -> list[UploadItem]:
        """Process every pending/errored item; returns the same list with statuses set."""
        base_order = self._existing_count(event_id)
        tags_override = parse_manual_tags(manual_tags)

        queue: asyncio.Queue = asyncio.Queue()
        for index, item in enumerate(items):
            if item.status in (PENDING, ERROR):
                queue.put_nowait((index, item))

        async def worker():
            while True:
                try:
                    index, item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await self._process(
                    item,
                    order_index=base_order + index,
                    event_id=event_id,
                    manual_description=manual_description,
                    tags_override=tags_override,
                    event_date=event_date,
                    uploaded_by=uploaded_by,
                )

        workers = min(self.concurrency, queue.qsize())
        await asyncio.gather(*(worker() for _ in range(workers)))

        completed = sum(1 for i in items if i.status == COMPLETE)
        failed = sum(1 for i in items if i.status == ERROR)
        logger.info(f"Upload run finished: {completed} complete, {failed} failed")
        return items

    def _existing_count(self, event_id: Optional[str]) -> int:
        if event_id is None:
            return 0
        db = self.session_factory()
        try:
            return db.query(MediaRecord).filter(MediaRecord.event_id == event_id).count()
        finally:
            db.close()

    async def _process(self, item: UploadItem, order_index: int, event_id, manual_description,
                       tags_override, event_date, uploaded_by):
        bucket = bucket_for(item.media_type)
        object_name = build_object_name(event_id or "uploads", item.filename)
        stored = False
        item.error = None
        try:
            item.status = UPLOADING
            await asyncio.to_thread(
                put_media, self.storage, bucket, object_name,
                BytesIO(item.data), len(item.data), item.content_type,
            )
            stored = True
            url = public_url(bucket, object_name)

            item.status = PROCESSING
            # Raises for photos when fallback is off; videos come back as fallback results
            analysis = await self.generator.analyze(url, item.media_type)

            record = MediaRecord(
                event_id=event_id,
                url=url,
                media_type=item.media_type,
                description=manual_description or analysis.description,
                ai_description=analysis.description,
                tags=tags_override or analysis.tags,
                faces_count=analysis.faces_count,
                setting=analysis.setting,
                thumbnail_url=analysis.thumbnail_url,
                file_size=len(item.data),
                order_index=order_index,
                event_date=event_date,
                uploaded_by=uploaded_by,
            )
            db = self.session_factory()
            try:
                db.add(record)
                db.commit()
                db.refresh(record)
                item.media_id = record.id
            finally:
                db.close()

            item.status = COMPLETE
            logger.info(f"Stored {item.media_type} {item.filename} as {item.media_id}")
        except Exception as e:
            item.status = ERROR
            item.error = str(e)
            logger.error(f"Upload error for {item.filename}: {e}", exc_info=True)
            if stored:
                await self._discard(bucket, object_name)

    async def _discard(self, bucket: str, object_name: str):
        try:
            await asyncio.to_thread(remove_media, self.storage, bucket, object_name)
        except Exception as e:
            logger.warning(f"Could not remove orphaned object {bucket}/{object_name}: {e}")
