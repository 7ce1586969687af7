import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paperdesk.common.errors import FileRejected, NotFoundError
from paperdesk.config import settings
from paperdesk.storage.blobs import BlobStore
from paperdesk.storage.models import FileMetadata

logger = logging.getLogger(__name__)


def validate_upload(content_type: str, size: int) -> None:
    if content_type not in settings.allowed_upload_types:
        raise FileRejected("File type not allowed. Upload images (JPEG, PNG, WebP) or PDF files.")
    if size == 0:
        raise FileRejected("File is empty")
    if size > settings.max_upload_mb * 1024 * 1024:
        raise FileRejected(f"File size too large. Maximum size is {settings.max_upload_mb}MB.")


async def record_file_metadata(
    db: AsyncSession,
    storage_id: str,
    original_name: str,
    file_type: str,
    file_size: int,
    uploaded_by: uuid.UUID,
    is_processed: bool = False,
) -> FileMetadata:
    metadata = FileMetadata(
        storage_id=storage_id,
        original_name=original_name,
        file_type=file_type,
        file_size=file_size,
        uploaded_by=uploaded_by,
        is_processed=is_processed,
    )
    db.add(metadata)
    await db.flush()
    return metadata


async def upload_file(
    db: AsyncSession,
    blobs: BlobStore,
    uploaded_by: uuid.UUID,
    filename: str,
    content: bytes,
    content_type: str,
) -> FileMetadata:
    validate_upload(content_type, len(content))
    storage_id = blobs.store(content, content_type)
    # Images are usable as-is for overlays; nothing further to process.
    metadata = await record_file_metadata(
        db,
        storage_id=storage_id,
        original_name=filename,
        file_type=content_type,
        file_size=len(content),
        uploaded_by=uploaded_by,
        is_processed=content_type.startswith("image/"),
    )
    logger.info("User %s uploaded %s as %s", uploaded_by, filename, storage_id)
    return metadata


async def get_file_metadata(db: AsyncSession, storage_id: str) -> Optional[FileMetadata]:
    result = await db.execute(select(FileMetadata).where(FileMetadata.storage_id == storage_id))
    return result.scalar_one_or_none()


async def get_file_url(db: AsyncSession, blobs: BlobStore, storage_id: str) -> str:
    if await get_file_metadata(db, storage_id) is None:
        raise NotFoundError("File not found")
    return blobs.get_url(storage_id)
