from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from paperdesk.auth.models import User
from paperdesk.common.errors import PaperDeskError, raise_http_error
from paperdesk.database import get_db
from paperdesk.dependencies import get_current_user
from paperdesk.storage.blobs import BlobStore, get_blob_store
from paperdesk.storage.schemas import FileMetadataResponse, FileUrlResponse
from paperdesk.storage.service import get_file_url, upload_file

router = APIRouter()


@router.post("", response_model=FileMetadataResponse, status_code=status.HTTP_201_CREATED)
async def upload(
    db: Annotated[AsyncSession, Depends(get_db)],
    blobs: Annotated[BlobStore, Depends(get_blob_store)],
    current_user: Annotated[User, Depends(get_current_user)],
    file: UploadFile = File(...),
):
    content = await file.read()
    try:
        return await upload_file(
            db,
            blobs,
            uploaded_by=current_user.id,
            filename=file.filename or "upload",
            content=content,
            content_type=file.content_type or "application/octet-stream",
        )
    except PaperDeskError as e:
        raise_http_error(e)


@router.get("/{storage_id}/url", response_model=FileUrlResponse)
async def file_url(
    storage_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    blobs: Annotated[BlobStore, Depends(get_blob_store)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        url = await get_file_url(db, blobs, storage_id)
    except PaperDeskError as e:
        raise_http_error(e)
    return FileUrlResponse(storage_id=storage_id, url=url)
